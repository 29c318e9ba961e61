"""Settings for relation-core.

Values come from keyword arguments or, via ``RelationSettings.from_env()``,
from ``RELATION_*`` environment variables.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from .client import RelationClient
from .storage import LocalStore
from .types import RelationTyping

ENV_PREFIX = "RELATION_"

# field name -> environment variable suffix
_ENV_FIELDS = {
    "api_url": "API_URL",
    "api_key": "API_KEY",
    "timeout": "TIMEOUT",
    "storage_path": "STORAGE_PATH",
    "relation_typing": "TYPING",
    "reveal_initial_delay": "REVEAL_INITIAL_DELAY",
    "reveal_period": "REVEAL_PERIOD",
    "fading_threshold_days": "FADING_DAYS",
}


class RelationSettings(BaseModel):
    """Deployment configuration.

    Attributes:
        api_url: Base URL of the REST persistence backend; local storage is
            used when unset
        api_key: Key sent as ``apikey`` and bearer token
        timeout: HTTP timeout in seconds
        storage_path: JSON file for the offline-first store (in memory if unset)
        relation_typing: Typed or phone-only requests for this deployment
        reveal_initial_delay: Seconds before the first node is revealed
        reveal_period: Seconds between revealed nodes
        fading_threshold_days: Days without interaction before a tie is fading
    """

    api_url: str | None = None
    api_key: str | None = None
    timeout: float = 30.0
    storage_path: Path | None = None
    relation_typing: RelationTyping = RelationTyping.TYPED
    reveal_initial_delay: float = Field(default=0.5, ge=0)
    reveal_period: float = Field(default=0.2, gt=0)
    fading_threshold_days: int = Field(default=90, ge=1)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> "RelationSettings":
        """Build settings from ``RELATION_*`` variables; overrides win."""
        environ = os.environ if environ is None else environ
        values = {}
        for field_name, suffix in _ENV_FIELDS.items():
            raw = environ.get(ENV_PREFIX + suffix)
            if raw not in (None, ""):
                values[field_name] = raw
        values.update(overrides)
        return cls(**values)


def build_backend(settings: RelationSettings):
    """Pick the persistence backend for these settings."""
    if settings.api_url:
        return RelationClient(settings.api_url, api_key=settings.api_key, timeout=settings.timeout)
    return LocalStore(settings.storage_path)
