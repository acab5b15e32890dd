"""Config loading and validation."""

from .schema import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    AppConfig,
    load_config,
    resolve_config_path,
    save_config,
)

__all__ = [
    "AppConfig",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "resolve_config_path",
    "save_config",
]
