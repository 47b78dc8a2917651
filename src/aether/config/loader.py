"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to functions)
2. Environment variables (AETHER_*)
3. Config file (~/.aether/config.toml)
4. Default values

Environment variables:
- AETHER_FFMPEG_PATH: Path to ffmpeg executable
- AETHER_FFPROBE_PATH: Path to ffprobe executable
- AETHER_CONFIG_PATH: Path to config file (overrides default location)
- AETHER_DATA_DIR: Path to aether data directory (overrides ~/.aether/)
- AETHER_LOG_LEVEL / AETHER_LOG_FILE / AETHER_LOG_FORMAT: Logging overrides
- AETHER_THUMBNAIL_WORKERS / AETHER_FILE_INFO_WORKERS: Batch bounds
- AETHER_SERVER_BIND / AETHER_SERVER_PORT: HTTP server address
"""

from __future__ import annotations

import logging
import threading
import tomllib
from pathlib import Path
from typing import Any

from aether.config.env import EnvReader
from aether.config.models import (
    AetherConfig,
    ConversionSettings,
    LoggingConfig,
    ServerConfig,
    ToolPathsConfig,
)
from aether.errors import InvalidConfigError

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".aether"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_data_dir(env_reader: EnvReader | None = None) -> Path:
    """Get the aether data directory.

    Can be overridden by AETHER_DATA_DIR environment variable.
    Supports tilde expansion.

    Returns:
        Path to the data directory (~/.aether/ by default).
    """
    reader = env_reader or EnvReader()
    return reader.get_path("AETHER_DATA_DIR", must_exist=False) or DEFAULT_CONFIG_DIR


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Get the default config file path.

    AETHER_CONFIG_PATH wins; otherwise config.toml inside the data dir.
    """
    reader = env_reader or EnvReader()
    env_path = reader.get_path("AETHER_CONFIG_PATH", must_exist=False)
    if env_path is not None:
        return env_path
    return get_data_dir(reader) / "config.toml"


def _read_toml(path: Path, strict: bool) -> dict:
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}
    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise InvalidConfigError(f"cannot parse {path}: {e}") from e
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}
    logger.debug("Loaded config from %s", path)
    return config


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. Use
    clear_config_cache() to force a reload regardless of mtime.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise InvalidConfigError on parse failures.
                If False (default), return empty dict on errors.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = _read_toml(path, strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _section(file_config: dict, name: str) -> dict[str, Any]:
    section = file_config.get(name, {})
    if not isinstance(section, dict):
        logger.warning("Ignoring config section [%s]: not a table", name)
        return {}
    return section


def _file_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def _first(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> AetherConfig:
    """Get aether configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides AETHER_CONFIG_PATH).
        ffmpeg_path: CLI override for ffmpeg path.
        ffprobe_path: CLI override for ffprobe path.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise InvalidConfigError on config file parse
            failures.

    Returns:
        AetherConfig with merged configuration.

    Raises:
        ValueError: If a merged section fails validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(
        config_path or get_default_config_path(reader), strict=strict
    )

    tools_file = _section(file_config, "tools")
    tools = ToolPathsConfig(
        ffmpeg=_first(
            ffmpeg_path,
            reader.get_path("AETHER_FFMPEG_PATH"),
            _file_path(tools_file.get("ffmpeg")),
        ),
        ffprobe=_first(
            ffprobe_path,
            reader.get_path("AETHER_FFPROBE_PATH"),
            _file_path(tools_file.get("ffprobe")),
        ),
    )

    logging_file = _section(file_config, "logging")
    defaults = LoggingConfig()
    logging_config = LoggingConfig(
        level=_first(
            reader.get_str("AETHER_LOG_LEVEL"),
            logging_file.get("level"),
            defaults.level,
        ),
        file=_first(
            reader.get_path("AETHER_LOG_FILE", must_exist=False),
            _file_path(logging_file.get("file")),
        ),
        format=_first(
            reader.get_str("AETHER_LOG_FORMAT"),
            logging_file.get("format"),
            defaults.format,
        ),
        include_stderr=bool(
            logging_file.get("include_stderr", defaults.include_stderr)
        ),
        max_bytes=int(logging_file.get("max_bytes", defaults.max_bytes)),
        backup_count=int(logging_file.get("backup_count", defaults.backup_count)),
    )

    conversion_file = _section(file_config, "conversion")
    conversion_defaults = ConversionSettings()
    conversion = ConversionSettings(
        thumbnail_workers=_first(
            reader.get_int("AETHER_THUMBNAIL_WORKERS"),
            conversion_file.get("thumbnail_workers"),
            conversion_defaults.thumbnail_workers,
        ),
        file_info_workers=_first(
            reader.get_int("AETHER_FILE_INFO_WORKERS"),
            conversion_file.get("file_info_workers"),
            conversion_defaults.file_info_workers,
        ),
        progress_interval_ms=conversion_file.get(
            "progress_interval_ms", conversion_defaults.progress_interval_ms
        ),
        diagnostic_tail_lines=conversion_file.get(
            "diagnostic_tail_lines", conversion_defaults.diagnostic_tail_lines
        ),
        default_quality=conversion_file.get(
            "default_quality", conversion_defaults.default_quality
        ),
        default_conflict_mode=str(
            conversion_file.get(
                "default_conflict_mode", conversion_defaults.default_conflict_mode
            )
        ).casefold(),
    )

    server_file = _section(file_config, "server")
    server_defaults = ServerConfig()
    server = ServerConfig(
        bind=_first(
            reader.get_str("AETHER_SERVER_BIND"),
            server_file.get("bind"),
            server_defaults.bind,
        ),
        port=_first(
            reader.get_int("AETHER_SERVER_PORT"),
            server_file.get("port"),
            server_defaults.port,
        ),
        shutdown_timeout=float(
            server_file.get("shutdown_timeout", server_defaults.shutdown_timeout)
        ),
    )

    return AetherConfig(
        tools=tools,
        logging=logging_config,
        conversion=conversion,
        server=server,
    )
