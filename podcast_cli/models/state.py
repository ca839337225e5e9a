"""
Pydantic models for the persisted subscription state.

The on-disk JSON uses camelCase keys (``numEpisodes``, ``lastRunTime``); the
models accept either spelling on input and always write camelCase.
"""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field

from podcast_cli import __version__
from podcast_cli.models.config import AppConfig

STALE_AFTER = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Subscription(BaseModel):
    """A podcast the user follows, with the feed size seen at the last refresh."""

    title: str
    url: str
    num_episodes: int = Field(0, alias="numEpisodes", ge=0)

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True
        frozen = True


class PersistedState(BaseModel):
    """The sole durable record: every subscription plus run metadata."""

    version: str = __version__
    last_run_time: datetime = Field(default_factory=utc_now, alias="lastRunTime")
    config: AppConfig = Field(default_factory=AppConfig)
    subscriptions: list[Subscription] = Field(default_factory=list)

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True

    def is_stale(self, now: datetime | None = None) -> bool:
        """True when more than a day has passed since the last recorded run."""
        now = now or utc_now()
        last = self.last_run_time
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return now - last > STALE_AFTER

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
