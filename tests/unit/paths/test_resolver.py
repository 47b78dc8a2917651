"""Tests for output path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from aether.domain.formats import AudioFormat, OutputFormat, VideoFormat
from aether.domain.models import (
    CONFLICT_KEEP_BOTH,
    CONFLICT_OVERWRITE,
    NamingConfig,
    OriginalBlock,
    PrefixBlock,
)
from aether.errors import DuplicateLimitError, FileConflictError
from aether.paths import resolver
from aether.paths.resolver import (
    apply_conflict_policy,
    calculate_output_path,
    next_free_path,
    resolve_output_path,
)

MP4 = OutputFormat.video(VideoFormat.MP4)
MP3 = OutputFormat.audio(AudioFormat.MP3)


class TestCalculateOutputPath:
    """Tests for calculate_output_path."""

    def test_beside_input(self) -> None:
        """Should default to the input's directory and stem."""
        result = calculate_output_path(Path("/media/clip.mov"), MP4)
        assert result == Path("/media/clip.mp4")

    def test_output_directory(self) -> None:
        result = calculate_output_path(
            Path("/media/clip.mov"), MP3, output_directory=Path("/exports")
        )
        assert result == Path("/exports/clip.mp3")

    def test_naming_config(self) -> None:
        naming = NamingConfig(blocks=(PrefixBlock("small"), OriginalBlock()))
        result = calculate_output_path(Path("/media/clip.mov"), MP4, naming=naming)
        assert result == Path("/media/small_clip.mp4")

    def test_copy_mode_keeps_input_extension(self) -> None:
        """Should keep the source extension when processing is disabled."""
        result = calculate_output_path(
            Path("/media/clip.mov"), MP4, processing_enabled=False
        )
        assert result == Path("/media/clip.mov")


class TestApplyConflictPolicy:
    """Tests for apply_conflict_policy."""

    def test_free_path_untouched(self, temp_dir: Path) -> None:
        path = temp_dir / "clip.mp4"
        assert apply_conflict_policy(path, "reject") == path

    def test_reject(self, temp_dir: Path) -> None:
        path = temp_dir / "clip.mp4"
        path.write_bytes(b"")
        with pytest.raises(FileConflictError):
            apply_conflict_policy(path, "reject")

    def test_unknown_mode_rejects(self, temp_dir: Path) -> None:
        """Should treat any unrecognized mode as reject."""
        path = temp_dir / "clip.mp4"
        path.write_bytes(b"")
        with pytest.raises(FileConflictError):
            apply_conflict_policy(path, "ask")

    def test_overwrite(self, temp_dir: Path) -> None:
        path = temp_dir / "clip.mp4"
        path.write_bytes(b"")
        assert apply_conflict_policy(path, CONFLICT_OVERWRITE) == path

    def test_keep_both_skips_taken_suffixes(self, temp_dir: Path) -> None:
        for name in ("clip.mp4", "clip_2.mp4", "clip_3.mp4"):
            (temp_dir / name).write_bytes(b"")
        result = apply_conflict_policy(temp_dir / "clip.mp4", CONFLICT_KEEP_BOTH)
        assert result == temp_dir / "clip_4.mp4"


class TestNextFreePath:
    """Tests for next_free_path."""

    def test_limit_exhausted(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should raise once every numbered suffix is taken."""
        monkeypatch.setattr(resolver, "MAX_DUPLICATE_SUFFIX", 3)
        for name in ("clip.mp4", "clip_2.mp4", "clip_3.mp4"):
            (temp_dir / name).write_bytes(b"")
        with pytest.raises(DuplicateLimitError):
            next_free_path(temp_dir / "clip.mp4")


class TestResolveOutputPath:
    """Tests for resolve_output_path."""

    def test_creates_missing_directories(self, temp_dir: Path) -> None:
        target = temp_dir / "a" / "b"
        result = resolve_output_path(
            temp_dir / "clip.mov", MP4, output_directory=target
        )
        assert result == target / "clip.mp4"
        assert target.is_dir()

    def test_default_policy_is_keep_both(self, temp_dir: Path) -> None:
        (temp_dir / "clip.mp4").write_bytes(b"")
        result = resolve_output_path(temp_dir / "clip.mov", MP4)
        assert result == temp_dir / "clip_2.mp4"
