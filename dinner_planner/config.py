"""Environment-backed settings.

Values are read at call time so tests (and a reloaded .env) can change them.

Known keys:
    API_KEY               — Anthropic API key (falls back to ANTHROPIC_API_KEY).
    PLANNER_MODEL         — model identifier used for every generation stage.
    PLANNER_MAX_TOKENS    — max tokens per model reply.
    PLANNER_TIMEOUT_MS    — optional request timeout; unset means client default.
    RECOMMENDATION_COUNT  — number of dishes requested per recommendation batch.
    IMAGE_RULES_PATH      — optional JSON file replacing the dish image rules.
    SECRET_KEY            — signing key for the session cookie.
    LOG_LEVEL             — root log level.
    HOST, PORT            — bind address for the `dinner-planner` command.
"""

import os
from typing import Optional

DEFAULT_MODEL = "claude-opus-4-5-20251101"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_RECOMMENDATION_COUNT = 12


def get_setting(key: str, default: str = None) -> str:
    """Return the environment value for key, or default if unset or blank."""
    value = os.environ.get(key, "").strip()
    return value if value else default


def _get_int(key: str, default: Optional[int]) -> Optional[int]:
    raw = get_setting(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


def get_api_key() -> Optional[str]:
    """Return the configured API key, or None when no credential is set."""
    return get_setting("API_KEY") or get_setting("ANTHROPIC_API_KEY")


def get_model() -> str:
    return get_setting("PLANNER_MODEL", DEFAULT_MODEL)


def get_max_tokens() -> int:
    return _get_int("PLANNER_MAX_TOKENS", DEFAULT_MAX_TOKENS)


def get_timeout_ms() -> Optional[int]:
    """Request timeout in milliseconds, or None to keep the transport default."""
    timeout = _get_int("PLANNER_TIMEOUT_MS", None)
    if timeout is not None and timeout <= 0:
        return None
    return timeout


def get_recommendation_count() -> int:
    return _get_int("RECOMMENDATION_COUNT", DEFAULT_RECOMMENDATION_COUNT)


def get_image_rules_path() -> Optional[str]:
    return get_setting("IMAGE_RULES_PATH")


def get_secret_key() -> str:
    return get_setting("SECRET_KEY", "dev-secret-change-in-production")


def get_log_level() -> str:
    return get_setting("LOG_LEVEL", "INFO").upper()


def get_host() -> str:
    return get_setting("HOST", "127.0.0.1")


def get_port() -> int:
    return _get_int("PORT", 8000)
