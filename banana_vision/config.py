"""Runtime settings read from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .utils import getenv_flag, getenv_int

DEFAULT_MODEL = "gemini-2.5-flash-image"
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_DELAY_MS = 5000
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    dry_run: bool = False


def resolve_api_key() -> str | None:
    for name in API_KEY_ENV_VARS:
        value = str(os.getenv(name) or "").strip()
        if value:
            return value
    return None


def load_settings(*, model: str | None = None, dry_run: bool | None = None) -> Settings:
    """Build settings from the environment; explicit arguments win."""
    resolved_model = model or str(os.getenv("BANANA_VISION_MODEL") or "").strip() or DEFAULT_MODEL
    return Settings(
        api_key=resolve_api_key(),
        model=resolved_model,
        max_retries=max(0, getenv_int("BANANA_VISION_MAX_RETRIES", DEFAULT_MAX_RETRIES)),
        initial_delay_ms=max(0, getenv_int("BANANA_VISION_RETRY_DELAY_MS", DEFAULT_INITIAL_DELAY_MS)),
        dry_run=getenv_flag("BANANA_VISION_DRYRUN", False) if dry_run is None else dry_run,
    )
