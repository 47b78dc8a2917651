"""Output naming and path resolution."""

from aether.paths.naming import (
    TimestampSequencer,
    apply_naming_pipeline,
    random_token,
    sanitize_filename,
)
from aether.paths.resolver import (
    MAX_DUPLICATE_SUFFIX,
    apply_conflict_policy,
    calculate_output_path,
    next_free_path,
    resolve_output_path,
)

__all__ = [
    "MAX_DUPLICATE_SUFFIX",
    "TimestampSequencer",
    "apply_conflict_policy",
    "apply_naming_pipeline",
    "calculate_output_path",
    "next_free_path",
    "random_token",
    "resolve_output_path",
    "sanitize_filename",
]
