"""Application configuration schema and JSON loader."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from flashsource.domain.exceptions import ConfigurationError
from flashsource.formats import DEFAULT_WINDOWS_IMAGE_PATTERNS
from flashsource.resolution.recent import MAX_RECENT_URLS, RECENT_URLS_KEY
from flashsource.sources.http import DEFAULT_TIMEOUT_S

__all__ = [
    "AppConfig",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "resolve_config_path",
    "save_config",
]

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FLASHSOURCE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/flashsource/config.json")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class AppConfig(BaseModel):
    """User configuration.

    Attributes:
        state_dir: Directory holding persisted state (recent URLs)
        recent_urls_key: Storage key of the recent-URL list
        recent_urls_limit: How many recent URLs are kept
        http_timeout_s: Connect/read timeout for URL sources
        direct_io: Open block devices with O_DIRECT where available
        windows_image_patterns: File-name fragments flagging Windows images (empty disables the check)
        log_level: Root log level for the CLI
    """

    state_dir: Path = Field(default=Path("~/.local/state/flashsource"), validate_default=True)
    recent_urls_key: str = RECENT_URLS_KEY
    recent_urls_limit: int = Field(default=MAX_RECENT_URLS, ge=1, le=50)
    http_timeout_s: float = Field(default=DEFAULT_TIMEOUT_S, gt=0)
    direct_io: bool = True
    windows_image_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WINDOWS_IMAGE_PATTERNS)
    )
    log_level: str = "INFO"

    @field_validator("state_dir", mode="before")
    @classmethod
    def _expand_state_dir(cls, value: object) -> Path:
        if value is None or str(value).strip() == "":
            raise ValueError("state_dir must be set")
        return Path(str(value)).expanduser().resolve()

    @field_validator("recent_urls_key")
    @classmethod
    def _key_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("recent_urls_key must not be empty")
        return value

    @field_validator("windows_image_patterns")
    @classmethod
    def _patterns_not_blank(cls, value: list[str]) -> list[str]:
        if any(not pattern.strip() for pattern in value):
            raise ValueError("windows_image_patterns must not contain blank entries")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @property
    def storage_path(self) -> Path:
        return self.state_dir / "storage.json"


def resolve_config_path(path: Path | str | None = None) -> Path:
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def load_config(path: Path | str | None = None) -> AppConfig:
    """Load configuration, falling back to defaults when no file exists.

    Raises:
        ConfigurationError: The file exists but is not valid configuration
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        logger.debug("No config file at %s; using defaults", config_path)
        return AppConfig()

    try:
        return AppConfig.model_validate_json(config_path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ConfigurationError.from_validation_error(str(config_path), exc) from exc
    except OSError as exc:
        raise ConfigurationError(
            f"Could not read configuration {config_path}",
            cause=exc,
            context={"config_path": str(config_path)},
        ) from exc


def save_config(config: AppConfig, path: Path | str | None = None) -> Path:
    """Write ``config`` as JSON, replacing the target atomically."""
    config_path = resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=str(config_path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(config.model_dump_json(indent=2))
        os.replace(tmp_path, config_path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return config_path
