"""Configuration management for aether.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (AETHER_*)
3. Config file (~/.aether/config.toml)
4. Default values (lowest priority)
"""

from aether.config.env import EnvReader
from aether.config.loader import (
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from aether.config.logging_factory import (
    build_logging_config,
    configure_logging_from_cli,
)
from aether.config.models import (
    AetherConfig,
    ConversionSettings,
    LoggingConfig,
    ServerConfig,
    ToolPathsConfig,
)

__all__ = [
    # Models
    "AetherConfig",
    "ConversionSettings",
    "LoggingConfig",
    "ServerConfig",
    "ToolPathsConfig",
    # Loader
    "EnvReader",
    "clear_config_cache",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
    # Logging
    "build_logging_config",
    "configure_logging_from_cli",
]
