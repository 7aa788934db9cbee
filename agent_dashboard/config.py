"""
Runtime settings read from the environment (after `load_dotenv()` in main).

Rationale:
- Keep configuration to a handful of env vars with safe defaults.
- A bad value is logged and replaced by its default rather than stopping start-up.
"""

import os
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 180.0
DEFAULT_USER_INPUT = "Example user input"
DEFAULT_MAX_DASHBOARDS = 50
DEFAULT_MAX_JOBS = 200
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    api_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL
    default_user_input: str = DEFAULT_USER_INPUT
    max_dashboards: int = DEFAULT_MAX_DASHBOARDS
    max_jobs: int = DEFAULT_MAX_JOBS


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}; using {default}")
        return default
    return value


def _env_log_level() -> str:
    raw = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    # getLevelName maps known names to their int level and returns a string otherwise
    if not raw or not isinstance(logging.getLevelName(raw), int):
        logger.warning(f"Ignoring unknown LOG_LEVEL={raw!r}; using {DEFAULT_LOG_LEVEL}")
        return DEFAULT_LOG_LEVEL
    return raw


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        api_timeout_seconds=_env_number("API_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, float),
        log_level=_env_log_level(),
        default_user_input=os.getenv("DEFAULT_USER_INPUT") or DEFAULT_USER_INPUT,
        max_dashboards=_env_number("MAX_DASHBOARDS", DEFAULT_MAX_DASHBOARDS, int),
        max_jobs=_env_number("MAX_JOBS", DEFAULT_MAX_JOBS, int),
    )
