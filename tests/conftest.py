"""Shared test fixtures for aether."""

import os
import shutil
import stat
import tempfile
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from aether.config.loader import clear_config_cache
from aether.logging.context import clear_job_context
from aether.tools.detection import configure_tool_path, refresh_tool_cache


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_environment(temp_dir: Path):
    """Point the data dir at an empty temp directory and reset caches.

    Keeps a developer's ~/.aether/config.toml and AETHER_* variables out of
    every test.
    """
    data_dir = temp_dir / ".aether"
    data_dir.mkdir()
    env = {k: v for k, v in os.environ.items() if not k.startswith("AETHER_")}
    env["AETHER_DATA_DIR"] = str(data_dir)
    with patch.dict(os.environ, env, clear=True):
        clear_config_cache()
        yield data_dir
    clear_config_cache()
    configure_tool_path("ffmpeg", None)
    configure_tool_path("ffprobe", None)
    refresh_tool_cache()
    clear_job_context()


@pytest.fixture
def make_ffmpeg(temp_dir: Path) -> Callable[[str], Path]:
    """Factory for fake ffmpeg executables.

    The body is a POSIX shell script fragment. ``$OUT`` holds the last
    argument (the output path), which is how every argument vector ends.
    """
    counter = iter(range(1000))

    def _make(body: str) -> Path:
        script = temp_dir / f"fake-ffmpeg-{next(counter)}"
        script.write_text(
            "#!/bin/sh\n"
            'for OUT in "$@"; do :; done\n'
            f"{body}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        return script

    return _make


@pytest.fixture
def sample_video(temp_dir: Path) -> Path:
    """An input file with a video extension (content is irrelevant)."""
    path = temp_dir / "input" / "clip.mov"
    path.parent.mkdir()
    path.write_bytes(b"not really a movie")
    return path


SUCCESSFUL_FFMPEG = """\
echo "  Duration: 00:00:10.00, start: 0.000000, bitrate: 1000 kb/s" >&2
echo "out_time_us=2500000" >&2
echo "out_time_us=5000000" >&2
echo "out_time_us=10000000" >&2
printf 'converted' > "$OUT"
exit 0"""


@pytest.fixture
def ffmpeg_ok(make_ffmpeg: Callable[[str], Path]) -> Path:
    """Fake ffmpeg that reports progress, writes the output and succeeds."""
    return make_ffmpeg(SUCCESSFUL_FFMPEG)
