"""Conversion engine: argument synthesis, process supervision, batching.

Usage:
    from aether.executor import ConversionOrchestrator, ProcessSupervisor

    supervisor = ProcessSupervisor()
    orchestrator = ConversionOrchestrator(supervisor, sink)
    result = await orchestrator.convert(request)
"""

from aether.executor.batch import BatchRunner
from aether.executor.command import (
    build_args,
    build_audio_extract_args,
    build_image_args,
    build_thumbnail_args,
    build_video_args,
)
from aether.executor.files import check_file_exists, get_file_info, get_files_info_batch
from aether.executor.filters import build_resize_filter
from aether.executor.orchestrator import ConversionOrchestrator
from aether.executor.probe import parse_probe_output, probe
from aether.executor.progress import (
    DiagnosticTail,
    ProgressTracker,
    classify_failure,
    parse_duration,
    parse_progress,
)
from aether.executor.quality import calculate_crf
from aether.executor.supervisor import ProcessSupervisor
from aether.executor.thumbnail import (
    cleanup_all_temp_thumbnails,
    delete_thumbnails,
    generate_thumbnail,
    generate_thumbnails_batch,
    thumbnail_path,
)

__all__ = [
    "BatchRunner",
    "ConversionOrchestrator",
    "DiagnosticTail",
    "ProcessSupervisor",
    "ProgressTracker",
    "build_args",
    "build_audio_extract_args",
    "build_image_args",
    "build_resize_filter",
    "build_thumbnail_args",
    "build_video_args",
    "calculate_crf",
    "check_file_exists",
    "classify_failure",
    "cleanup_all_temp_thumbnails",
    "delete_thumbnails",
    "generate_thumbnail",
    "generate_thumbnails_batch",
    "get_file_info",
    "get_files_info_batch",
    "parse_duration",
    "parse_probe_output",
    "parse_progress",
    "probe",
    "thumbnail_path",
]
