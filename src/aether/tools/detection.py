"""External tool location.

Executables are looked up in this order:

1. An explicitly configured path (config file, AETHER_*_PATH, CLI flag).
2. The bundled binary directories relative to the running application:
   the interpreter's directory, its ``binaries/`` child, and the
   ``../../binaries`` and ``../../src-tauri/binaries`` development layouts.
   Each directory is probed for a target-triple suffixed name first, then
   the plain name.
3. PATH.

Results are cached per process; the cache is thread-safe.
"""

from __future__ import annotations

import logging
import platform
import shutil
import sys
import threading
from pathlib import Path

from aether.errors import ToolNotFoundError

logger = logging.getLogger(__name__)

_tool_cache: dict[str, Path] = {}
_configured_paths: dict[str, Path] = {}
_cache_lock = threading.Lock()

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def target_triple() -> str:
    """Target triple of the running platform, as used in bundled names."""
    machine = platform.machine().lower()
    arch = _ARCH_ALIASES.get(machine, machine)
    if sys.platform == "win32":
        return f"{arch}-pc-windows-msvc"
    if sys.platform == "darwin":
        return f"{arch}-apple-darwin"
    return f"{arch}-unknown-linux-gnu"


def candidate_dirs(app_dir: Path | None = None) -> list[Path]:
    """Fixed, ordered list of bundled binary directories."""
    base = app_dir if app_dir is not None else Path(sys.executable).resolve().parent
    return [
        base,
        base / "binaries",
        base.parent.parent / "binaries",
        base.parent.parent / "src-tauri" / "binaries",
    ]


def candidate_names(name: str) -> list[str]:
    suffix = ".exe" if sys.platform == "win32" else ""
    return [f"{name}-{target_triple()}{suffix}", f"{name}{suffix}"]


def configure_tool_path(name: str, path: Path | None) -> None:
    """Register (or clear) an explicit path for a tool.

    Clears any cached lookup for that tool.
    """
    with _cache_lock:
        _tool_cache.pop(name, None)
        if path is None:
            _configured_paths.pop(name, None)
        else:
            _configured_paths[name] = path


def _search(name: str, app_dir: Path | None) -> tuple[Path | None, list[str]]:
    checked: list[str] = []

    configured = _configured_paths.get(name)
    if configured is not None:
        checked.append(str(configured))
        if configured.is_file():
            return configured, checked
        logger.warning("Configured path for %s is not a file: %s", name, configured)

    for directory in candidate_dirs(app_dir):
        for candidate in candidate_names(name):
            path = directory / candidate
            checked.append(str(path))
            if path.is_file():
                return path, checked

    checked.append("PATH")
    which_result = shutil.which(name)
    if which_result:
        return Path(which_result), checked

    return None, checked


def find_tool(name: str, app_dir: Path | None = None) -> Path | None:
    """Find a tool executable, or None if it cannot be located."""
    with _cache_lock:
        cached = _tool_cache.get(name)
        if cached is not None:
            return cached

        path, _ = _search(name, app_dir)
        if path is not None:
            logger.debug("Found %s at %s", name, path)
            _tool_cache[name] = path
        return path


def require_tool(name: str, app_dir: Path | None = None) -> Path:
    """Get path to a required tool.

    Raises:
        ToolNotFoundError: If the tool cannot be located; lists every
            location that was checked.
    """
    with _cache_lock:
        cached = _tool_cache.get(name)
        if cached is not None:
            return cached

        path, checked = _search(name, app_dir)
        if path is None:
            raise ToolNotFoundError(name, checked)
        logger.debug("Found %s at %s", name, path)
        _tool_cache[name] = path
        return path


def refresh_tool_cache() -> None:
    """Forget every cached lookup (configured paths are kept)."""
    with _cache_lock:
        _tool_cache.clear()
