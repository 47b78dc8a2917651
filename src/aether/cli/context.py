"""Shared helpers for CLI commands."""

from __future__ import annotations

import logging
import sys

import click

from aether.cli.exit_codes import ExitCode
from aether.config import get_config
from aether.config.models import AetherConfig
from aether.errors import InvalidConfigError
from aether.tools.detection import configure_tool_path

logger = logging.getLogger(__name__)


def load_cli_config(ctx: click.Context) -> AetherConfig:
    """Load the effective configuration for a subcommand.

    Configured tool paths are registered with the tool lookup so every
    later require_tool() call honours them. Exits with CONFIG_ERROR if the
    merged configuration does not validate.
    """
    config_path = (ctx.obj or {}).get("config_path")
    try:
        config = get_config(config_path=config_path, strict=config_path is not None)
    except (ValueError, InvalidConfigError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)

    configure_tool_path("ffmpeg", config.tools.ffmpeg)
    configure_tool_path("ffprobe", config.tools.ffprobe)
    return config
