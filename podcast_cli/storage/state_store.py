"""
Loads and atomically persists the subscription state file.

The state is read once when a command starts and written once when it ends.
Writes go to a temporary file in the same directory which is then renamed over
the real file, so a reader never observes a half-written document and a crash
before the rename leaves the previous state untouched.
"""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from podcast_cli.exceptions import StateError
from podcast_cli.models.state import PersistedState, utc_now
from podcast_cli.utils.path import LEGACY_STATE_FILE_NAME, create_dir

log = logging.getLogger(__name__)


class StateStore:
    """Reads and writes a single ``PersistedState`` JSON document."""

    def __init__(self, state_file_path: Path):
        self.state_file_path = state_file_path

    def _migrate_legacy_file(self) -> None:
        """Renames the pre-JSON ``.subscriptions`` file to the current name."""
        legacy_path = self.state_file_path.with_name(LEGACY_STATE_FILE_NAME)
        if legacy_path.is_file() and not self.state_file_path.exists():
            log.info("Migrating old subscriptions file...")
            try:
                os.replace(legacy_path, self.state_file_path)
            except OSError as e:
                raise StateError(f"Could not migrate '{legacy_path}': {e}") from e

    def load(self) -> PersistedState:
        """
        Loads the persisted state, returning a fresh state when none exists yet.

        Raises:
            StateError: If the file exists but cannot be read or parsed.
        """
        self._migrate_legacy_file()
        if not self.state_file_path.is_file():
            log.debug(f"No state file at '{self.state_file_path}', starting fresh.")
            return PersistedState()
        try:
            raw = self.state_file_path.read_text(encoding="utf-8")
            return PersistedState.model_validate_json(raw)
        except OSError as e:
            raise StateError(f"Could not read state file: {e}") from e
        except ValidationError as e:
            raise StateError(
                f"State file '{self.state_file_path}' is corrupt:\n{e}"
            ) from e

    def save(self, state: PersistedState) -> None:
        """
        Stamps the run time and atomically replaces the state file.

        Raises:
            StateError: If the directory or the temporary file cannot be created,
                or the new file cannot be written and renamed into place.
        """
        state.last_run_time = utc_now()
        payload = state.to_json()
        directory = self.state_file_path.parent

        temp_name = None
        try:
            create_dir(directory)
            fd, temp_name = tempfile.mkstemp(
                prefix=f"{self.state_file_path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, self.state_file_path)
        except OSError as e:
            if temp_name is not None:
                try:
                    os.remove(temp_name)
                except OSError:
                    pass
            raise StateError(f"Could not save state file: {e}") from e
        log.debug(f"Saved {len(state.subscriptions)} subscriptions.")
