"""Connection settings consumed by the resolver core."""

from dataclasses import dataclass
from typing import Any

import structlog

from polarion_resolver.config import Config

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Service location, authentication material and cache tuning."""

    url: str = ""
    use_token_auth: bool = True
    token: str | None = None
    username: str | None = None
    password: str | None = None
    refresh_minutes: float | None = None
    exception_restart: int | None = None
    project: str | None = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_config(cls, config: Config) -> "Settings":
        """Build settings from the ``polarion.*`` keys of a config."""
        return cls(
            url=str(config.get("polarion.url") or ""),
            use_token_auth=_to_bool(config.get("polarion.use_token_auth"), default=True),
            token=_to_str(config.get("polarion.token")),
            username=_to_str(config.get("polarion.username")),
            password=_to_str(config.get("polarion.password")),
            refresh_minutes=_to_number(config.get("polarion.refresh_time"), float),
            exception_restart=_to_number(config.get("polarion.exception_restart"), int),
            project=_to_str(config.get("polarion.project")),
            timeout=_to_number(config.get("polarion.timeout"), float) or DEFAULT_TIMEOUT,
        )


def missing_settings(settings: Settings) -> list[str]:
    """List the required settings that are not set for the chosen auth mode."""
    missing = []
    if not settings.url:
        missing.append("polarion.url")
    if settings.use_token_auth:
        if not settings.token or not settings.token.strip():
            missing.append("polarion.token")
    else:
        if not settings.username:
            missing.append("polarion.username")
        if not settings.password:
            missing.append("polarion.password")
    return missing


def _to_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    logger.warning("Ignoring invalid boolean setting", value=value, default=default)
    return default


def _to_number(value: Any, kind: type) -> Any:
    if value is None or value == "":
        return None
    try:
        return kind(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid numeric setting", value=value)
        return None
