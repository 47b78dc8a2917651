"""Output path resolution.

Computes where a job writes its output: the target directory, the stem
from the naming pipeline, the extension, and what to do when the path is
already taken.
"""

from __future__ import annotations

import logging
from pathlib import Path

from aether.domain.formats import OutputFormat
from aether.domain.models import (
    CONFLICT_KEEP_BOTH,
    CONFLICT_OVERWRITE,
    NamingConfig,
)
from aether.errors import ConversionIOError, DuplicateLimitError, FileConflictError

from .naming import apply_naming_pipeline

logger = logging.getLogger(__name__)

# keep_both probes {stem}_2 ... {stem}_9999
FIRST_DUPLICATE_SUFFIX = 2
MAX_DUPLICATE_SUFFIX = 9999


def calculate_output_path(
    input_path: Path,
    output_format: OutputFormat,
    output_directory: Path | None = None,
    naming: NamingConfig | None = None,
    processing_enabled: bool = True,
) -> Path:
    """Compute the nominal output path before conflict handling.

    The directory is ``output_directory`` or the input's parent. The stem
    comes from the naming pipeline, or is the input's stem when no naming
    config is given. Direct-copy jobs keep the input's own extension.
    """
    directory = output_directory if output_directory is not None else input_path.parent
    input_stem = input_path.stem or "output"
    if naming is not None:
        stem = apply_naming_pipeline(input_stem, naming)
    else:
        stem = input_stem

    if processing_enabled:
        extension = output_format.extension
    else:
        extension = input_path.suffix.lstrip(".")

    filename = f"{stem}.{extension}" if extension else stem
    return directory / filename


def next_free_path(path: Path) -> Path:
    """First ``{stem}_{n}{suffix}`` beside ``path`` that does not exist.

    Raises:
        DuplicateLimitError: If every suffix up to 9999 is taken.
    """
    for n in range(FIRST_DUPLICATE_SUFFIX, MAX_DUPLICATE_SUFFIX + 1):
        candidate = path.with_name(f"{path.stem}_{n}{path.suffix}")
        if not candidate.exists():
            return candidate
    raise DuplicateLimitError(str(path), MAX_DUPLICATE_SUFFIX)


def apply_conflict_policy(path: Path, conflict_mode: str) -> Path:
    """Resolve a collision with an existing file.

    Args:
        path: Nominal output path.
        conflict_mode: ``overwrite``, ``keep_both``, or anything else
            (reject).

    Returns:
        The path to write to.

    Raises:
        FileConflictError: If the path exists and the policy rejects it.
        DuplicateLimitError: If keep_both runs out of suffixes.
    """
    if not path.exists():
        return path

    if conflict_mode == CONFLICT_OVERWRITE:
        logger.debug("Overwriting existing output %s", path)
        return path
    if conflict_mode == CONFLICT_KEEP_BOTH:
        renamed = next_free_path(path)
        logger.debug("Output %s exists, using %s", path, renamed)
        return renamed
    raise FileConflictError(str(path))


def resolve_output_path(
    input_path: Path,
    output_format: OutputFormat,
    *,
    output_directory: Path | None = None,
    naming: NamingConfig | None = None,
    conflict_mode: str = CONFLICT_KEEP_BOTH,
    processing_enabled: bool = True,
) -> Path:
    """Resolve the final output path and create its parent directories.

    Raises:
        FileConflictError: Reject policy and the path exists.
        DuplicateLimitError: keep_both exhausted.
        ConversionIOError: The parent directory cannot be created.
    """
    nominal = calculate_output_path(
        input_path,
        output_format,
        output_directory=output_directory,
        naming=naming,
        processing_enabled=processing_enabled,
    )
    final = apply_conflict_policy(nominal, conflict_mode)

    try:
        final.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConversionIOError(f"cannot create {final.parent}: {e}") from e
    return final
