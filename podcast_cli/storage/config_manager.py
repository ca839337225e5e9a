"""
Reads the ``.config.ini`` file in the podcast directory into an ``AppConfig``.

All settings live in the ``[DEFAULT]`` section. A blank value means the setting
is unset (for the limits: unlimited). Keys added in newer releases are written
into existing files on load so users can discover them.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from podcast_cli.exceptions import ConfigurationError
from podcast_cli.models.config import AppConfig

log = logging.getLogger(__name__)

# Values written into a freshly created config file. Blank means "unset".
DEFAULT_INI_VALUES = {
    "auto_download_limit": "1",
    "download_subscription_limit": "",
    "max_workers": "",
    "max_attempts": "3",
}


class ConfigManager:
    """Loads, creates and upgrades the INI settings file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser()

    def load_config(self, cli_options: dict[str, Any] | None = None) -> AppConfig:
        """
        Returns the validated settings, with ``cli_options`` taking precedence over
        the file. The file is created with default values when it is missing.

        Raises:
            ConfigurationError: If the file cannot be parsed or a value is invalid.
        """
        if not self.config_file_path.is_file():
            log.debug(f"Writing default settings to '{self.config_file_path}'.")
            self.save_new_config({})

        self._read()
        added = self._migrate_if_needed()
        if added:
            log.info(
                f"[yellow]Added new settings to the config file: "
                f"{', '.join(added)}[/yellow]"
            )

        try:
            values = self._get_config_as_dict()
        except ValueError as e:
            raise ConfigurationError(
                f"Non-numeric value in '{self.config_file_path}': {e}"
            ) from e
        values.update(cli_options or {})

        try:
            return AppConfig(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Writes a complete config file from ``settings``; keys that are absent or
        None get their default value.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        parser = configparser.ConfigParser()
        parser["DEFAULT"] = {
            key: (
                DEFAULT_INI_VALUES.get(key, "")
                if settings.get(key) is None
                else str(settings[key])
            )
            for key in AppConfig.get_ini_keys()
        }
        try:
            self._write(parser)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot write '{self.config_file_path}': {e}"
            ) from e

    def _read(self) -> None:
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(
                f"Malformed config file '{self.config_file_path}': {e}"
            ) from e

    def _write(self, parser: configparser.ConfigParser) -> None:
        self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file_path, "w", encoding="utf-8") as f:
            parser.write(f)

    def _get_config_as_dict(self) -> dict[str, Any]:
        defaults = self._parser.defaults()

        def optional_int(key: str) -> int | None:
            raw = defaults.get(key, "").strip()
            return int(raw) if raw else None

        attempts = optional_int("max_attempts")
        return {
            "auto_download_limit": optional_int("auto_download_limit"),
            "download_subscription_limit": optional_int("download_subscription_limit"),
            "max_workers": optional_int("max_workers"),
            "max_attempts": 3 if attempts is None else attempts,
        }

    def _migrate_if_needed(self) -> list[str]:
        """Fills in keys missing from an existing file; returns the keys added."""
        defaults = self._parser.defaults()
        added = [key for key in AppConfig.get_ini_keys() if key not in defaults]
        if not added:
            return []

        for key in added:
            defaults[key] = DEFAULT_INI_VALUES.get(key, "")
            log.debug(f"Config key '{key}' was missing, set to '{defaults[key]}'.")
        try:
            self._write(self._parser)
        except OSError as e:
            log.error(f"Could not write upgraded config file: {e}")
        return added
