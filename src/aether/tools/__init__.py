"""External tool location."""

from aether.tools.detection import (
    candidate_dirs,
    candidate_names,
    configure_tool_path,
    find_tool,
    refresh_tool_cache,
    require_tool,
    target_triple,
)

__all__ = [
    "candidate_dirs",
    "candidate_names",
    "configure_tool_path",
    "find_tool",
    "refresh_tool_cache",
    "require_tool",
    "target_triple",
]
