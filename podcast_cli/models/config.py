"""
Pydantic model for application configuration.
Provides validation for the download limits and worker settings.
"""

from pydantic import BaseModel, field_validator


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # Download limits; None means unlimited
    auto_download_limit: int | None = None
    download_subscription_limit: int | None = None

    # Transfer settings
    max_workers: int | None = None
    max_attempts: int = 3

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True

    @field_validator("auto_download_limit", "download_subscription_limit")
    @classmethod
    def validate_limit(cls, v: int | None) -> int | None:
        """Ensures download limits are not negative."""
        if v is not None and v < 0:
            raise ValueError("Download limits cannot be negative.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int | None) -> int | None:
        """Ensures a reasonable number of workers."""
        if v is not None and (v < 1 or v > 64):
            raise ValueError("Max workers must be between 1 and 64.")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("Max attempts must be between 1 and 10.")
        return v

    @classmethod
    def get_ini_keys(cls) -> list[str]:
        """Returns all keys that are expected in the INI file, in declaration order."""
        return list(cls.model_fields)
