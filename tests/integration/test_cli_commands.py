"""Integration tests for the aether CLI commands."""

import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

import aether.cli as cli_module
from aether.cli import main
from aether.cli.exit_codes import ExitCode
from aether.executor.thumbnail import thumbnail_path
from aether.tools import detection

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        sys.platform == "win32", reason="fake ffmpeg is a POSIX shell script"
    ),
]


@pytest.fixture(autouse=True)
def skip_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    """Leave the root logger (and pytest's capture) alone."""
    monkeypatch.setattr(cli_module, "_logging_configured", True)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def invoke(runner: CliRunner, args: list[str], ffmpeg: Path | None = None):
    env = {"AETHER_FFMPEG_PATH": str(ffmpeg)} if ffmpeg is not None else {}
    return runner.invoke(main, args, env=env)


class TestMain:
    """Tests for the command group."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("convert", "thumbnail", "info", "cleanup-thumbnails", "serve"):
            assert command in result.output

    def test_invalid_config_file(self, runner: CliRunner, temp_dir: Path) -> None:
        """An explicit config file that does not parse is a config error."""
        config_file = temp_dir / "config.toml"
        config_file.write_text("[server\n")
        result = runner.invoke(
            main, ["--config", str(config_file), "info", str(temp_dir)]
        )
        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Invalid configuration" in result.output

    def test_invalid_config_value(self, runner: CliRunner, temp_dir: Path) -> None:
        config_file = temp_dir / "config.toml"
        config_file.write_text("[conversion]\nthumbnail_workers = 0\n")
        result = runner.invoke(
            main, ["--config", str(config_file), "info", str(temp_dir)]
        )
        assert result.exit_code == ExitCode.CONFIG_ERROR


class TestConvertCommand:
    """Tests for aether convert."""

    def test_success_prints_output_path(
        self, runner: CliRunner, sample_video: Path, ffmpeg_ok: Path
    ) -> None:
        result = invoke(runner, ["convert", str(sample_video), "-f", "mp4"], ffmpeg_ok)

        expected = sample_video.with_suffix(".mp4")
        assert result.exit_code == 0, result.output
        assert str(expected) in result.output
        assert expected.read_text() == "converted"

    def test_naming_and_output_dir(
        self,
        runner: CliRunner,
        sample_video: Path,
        ffmpeg_ok: Path,
        temp_dir: Path,
    ) -> None:
        out_dir = temp_dir / "exports"
        result = invoke(
            runner,
            [
                "convert",
                str(sample_video),
                "-f",
                "webm",
                "-o",
                str(out_dir),
                "--name-block",
                "prefix:Web Copy",
                "--name-block",
                "original",
                "--sanitize",
                "--quiet",
            ],
            ffmpeg_ok,
        )
        assert result.exit_code == 0, result.output
        assert (out_dir / "web_copy_clip.webm").exists()

    def test_missing_input(self, runner: CliRunner, temp_dir: Path) -> None:
        result = invoke(runner, ["convert", str(temp_dir / "nope.mov"), "-f", "mp4"])
        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        assert "File not found" in result.output

    @pytest.mark.parametrize(
        "extra",
        [
            ["--resize", "wide"],
            ["--resize", "0x10"],
            ["--name-block", "emoji"],
            ["--name-block", "random:many"],
            ["-q", "101"],
        ],
    )
    def test_bad_options_are_usage_errors(
        self, runner: CliRunner, sample_video: Path, extra: list[str]
    ) -> None:
        result = invoke(runner, ["convert", str(sample_video), "-f", "mp4", *extra])
        assert result.exit_code == 2

    def test_ffmpeg_not_found(
        self,
        runner: CliRunner,
        sample_video: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(detection, "candidate_dirs", lambda app_dir=None: [])
        monkeypatch.setattr(detection.shutil, "which", lambda name: None)
        result = invoke(runner, ["convert", str(sample_video), "-f", "mp4"])
        assert result.exit_code == ExitCode.TOOL_NOT_AVAILABLE
        assert "Could not find ffmpeg" in result.output

    def test_ffmpeg_failure(
        self,
        runner: CliRunner,
        sample_video: Path,
        make_ffmpeg: Callable[[str], Path],
    ) -> None:
        ffmpeg = make_ffmpeg('echo "Invalid data found" >&2\nexit 1')
        result = invoke(runner, ["convert", str(sample_video), "-f", "mp4"], ffmpeg)
        assert result.exit_code == ExitCode.OPERATION_FAILED
        assert "FFmpeg exited with code: 1" in result.output
        assert not sample_video.with_suffix(".mp4").exists()

    def test_unknown_format_fails_job(
        self, runner: CliRunner, sample_video: Path, ffmpeg_ok: Path
    ) -> None:
        result = invoke(runner, ["convert", str(sample_video), "-f", "xyz"], ffmpeg_ok)
        assert result.exit_code == ExitCode.OPERATION_FAILED
        assert "Unsupported format" in result.output

    def test_conflict_reject(
        self, runner: CliRunner, sample_video: Path, ffmpeg_ok: Path
    ) -> None:
        existing = sample_video.with_suffix(".mp4")
        existing.write_text("keep me")
        result = invoke(
            runner,
            ["convert", str(sample_video), "-f", "mp4", "--conflict", "reject"],
            ffmpeg_ok,
        )
        assert result.exit_code == ExitCode.OUTPUT_CONFLICT
        assert existing.read_text() == "keep me"

    def test_no_processing_copies(self, runner: CliRunner, sample_video: Path) -> None:
        """Copy mode needs no ffmpeg at all."""
        result = invoke(
            runner,
            [
                "convert",
                str(sample_video),
                "-f",
                "mp4",
                "--no-processing",
                "--name-block",
                "prefix:copy",
                "--name-block",
                "original",
            ],
        )
        assert result.exit_code == 0, result.output
        copied = sample_video.with_name("copy_clip.mov")
        assert copied.read_bytes() == sample_video.read_bytes()


class TestInfoCommand:
    """Tests for aether info."""

    def test_text_output(self, runner: CliRunner, temp_dir: Path) -> None:
        song = temp_dir / "song.mp3"
        song.write_bytes(b"x" * 3000)
        result = runner.invoke(main, ["info", str(song)])
        assert result.exit_code == 0
        assert "song.mp3\taudio\t2.9 KiB" in result.output

    def test_json_output(self, runner: CliRunner, temp_dir: Path) -> None:
        image = temp_dir / "pic.png"
        image.write_bytes(b"12345")
        result = runner.invoke(main, ["info", "--json", str(image)])
        assert result.exit_code == 0
        [item] = json.loads(result.output)
        assert item["info"] == {
            "path": str(image),
            "name": "pic.png",
            "size": 5,
            "mediaType": "image",
        }

    def test_missing_file_fails(self, runner: CliRunner, temp_dir: Path) -> None:
        result = runner.invoke(main, ["info", str(temp_dir / "gone.mp4")])
        assert result.exit_code == ExitCode.OPERATION_FAILED
        assert "File not found" in result.output


class TestThumbnailCommands:
    """Tests for aether thumbnail and aether cleanup-thumbnails."""

    def test_thumbnail(
        self,
        runner: CliRunner,
        temp_dir: Path,
        make_ffmpeg: Callable[[str], Path],
    ) -> None:
        thumbs = temp_dir / "thumbs"
        thumbs.mkdir()
        ffmpeg = make_ffmpeg('printf jpeg > "$OUT"')
        result = invoke(
            runner,
            ["thumbnail", "--dir", str(thumbs), "/in/a.mp4", "/in/b.flac"],
            ffmpeg,
        )
        assert result.exit_code == 0, result.output
        assert "/in/b.flac\t(no preview for audio)" in result.output
        assert len(list(thumbs.glob("aether_thumb_*.jpg"))) == 1

    def test_unknown_media_type(self, runner: CliRunner, temp_dir: Path) -> None:
        result = runner.invoke(main, ["thumbnail", "--dir", str(temp_dir), "a.txt"])
        assert result.exit_code == ExitCode.OPERATION_FAILED
        assert "unknown media type" in result.output

    def test_cleanup(self, runner: CliRunner, temp_dir: Path) -> None:
        thumbnail_path("a", temp_dir).write_text("x")
        result = runner.invoke(main, ["cleanup-thumbnails", "--dir", str(temp_dir)])
        assert result.exit_code == 0
        assert "Removed 1 temporary thumbnail(s)" in result.output


class TestServeCommand:
    """Tests for aether serve argument handling."""

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["serve", "--help"])
        assert result.exit_code == 0
        assert "--port" in result.output

    @pytest.mark.parametrize("port", ["0", "70000"])
    def test_invalid_port(self, runner: CliRunner, port: str) -> None:
        result = runner.invoke(main, ["serve", "--port", port])
        assert result.exit_code == ExitCode.INVALID_ARGUMENTS
