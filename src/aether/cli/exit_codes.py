"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (arguments, config)
    20-29: Input/output file errors
    30-39: Tool/dependency errors
    40-49: Operation errors
"""

from enum import IntEnum

from aether.domain.models import ProcessStatus


class ExitCode(IntEnum):
    """Exit codes for aether CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Cancelled via Ctrl+C / SIGTERM

    # Validation errors (10-19)
    INVALID_ARGUMENTS = 10
    CONFIG_ERROR = 11

    # Input/output file errors (20-29)
    TARGET_NOT_FOUND = 20
    OUTPUT_CONFLICT = 21

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30

    # Operation errors (40-49)
    OPERATION_FAILED = 40


def exit_code_for_status(status: ProcessStatus) -> ExitCode:
    """Map a job's terminal status to the process exit code."""
    match status:
        case ProcessStatus.COMPLETED:
            return ExitCode.SUCCESS
        case ProcessStatus.CANCELLED:
            return ExitCode.INTERRUPTED
        case ProcessStatus.CONFLICT:
            return ExitCode.OUTPUT_CONFLICT
        case _:
            return ExitCode.OPERATION_FAILED
