"""Diff engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from modeldiff.annotations import DEFAULT_ANNOTATION_TAG
from modeldiff.errors import ConfigurationError

logger = logging.getLogger(__name__)


class DuplicateKeyPolicy(str, Enum):
    """What to do when one keyed sequence holds two elements with the same key."""

    REJECT = "reject"
    FIRST_MATCH = "first_match"


class Settings(BaseSettings):
    """Diff settings loaded from environment variables with MODELDIFF_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="MODELDIFF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Field metadata key holding the raw annotation string.
    annotation_tag: str = DEFAULT_ANNOTATION_TAG

    # Keyed sequences
    duplicate_keys: DuplicateKeyPolicy = DuplicateKeyPolicy.REJECT

    # Add entries carry the new value instead of None.
    include_added_values: bool = False

    @field_validator("annotation_tag")
    @classmethod
    def validate_annotation_tag(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("annotation_tag must not be empty")
        return v


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info(
            "Loaded diff settings: tag=%s duplicate_keys=%s include_added_values=%s",
            settings.annotation_tag,
            settings.duplicate_keys.value,
            settings.include_added_values,
        )

    return settings


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_settings_cache: Settings | None = None


def get_settings() -> Settings:
    """Return the cached :class:`Settings` used when ``diff()`` is given none.

    The environment and ``.env`` are read on the first call only.

    Raises
    ------
    ConfigurationError
        If an environment value fails validation.
    """
    global _settings_cache  # noqa: PLW0603
    if _settings_cache is None:
        try:
            _settings_cache = load_settings()
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid diff settings in environment: {exc}") from exc
    return _settings_cache


def reset_settings_cache() -> None:
    """Forget the cached settings so the next call reloads them (for testing)."""
    global _settings_cache  # noqa: PLW0603
    _settings_cache = None
