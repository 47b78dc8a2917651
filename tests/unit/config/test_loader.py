"""Tests for config loader module."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from aether.config.env import EnvReader
from aether.config.loader import (
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from aether.errors import InvalidConfigError


class TestGetDefaultConfigPath:
    """Tests for get_default_config_path function."""

    def test_inside_data_dir(self) -> None:
        """Should return config.toml inside the data directory."""
        reader = EnvReader(env={"AETHER_DATA_DIR": "/data/aether"})
        assert get_default_config_path(reader) == Path("/data/aether/config.toml")

    def test_returns_env_path_when_set(self) -> None:
        """Should return env path when AETHER_CONFIG_PATH is set."""
        reader = EnvReader(env={"AETHER_CONFIG_PATH": "/custom/config.toml"})
        assert get_default_config_path(reader) == Path("/custom/config.toml")


class TestGetDataDir:
    """Tests for get_data_dir function."""

    def test_returns_default_when_env_not_set(self) -> None:
        assert get_data_dir(EnvReader(env={})) == Path.home() / ".aether"

    def test_expands_tilde(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Should expand tilde in path."""
        monkeypatch.setenv("HOME", str(tmp_path))
        reader = EnvReader(env={"AETHER_DATA_DIR": "~/custom/aether"})
        assert get_data_dir(reader) == tmp_path / "custom" / "aether"


class TestLoadConfigFile:
    """Tests for load_config_file function."""

    def test_returns_empty_dict_when_file_not_exists(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "nonexistent.toml") == {}

    def test_loads_valid_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text('[server]\nport = 9000\nbind = "0.0.0.0"\n')
        result = load_config_file(config_file)
        assert result["server"] == {"port": 9000, "bind": "0.0.0.0"}

    def test_invalid_toml_lenient(self, tmp_path: Path) -> None:
        """Should return empty dict for unparsable files by default."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("[server\n")
        assert load_config_file(config_file) == {}

    def test_invalid_toml_strict(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text("[server\n")
        with pytest.raises(InvalidConfigError):
            load_config_file(config_file, strict=True)

    def test_cached_until_mtime_changes(self, tmp_path: Path) -> None:
        """Should serve the cached parse until the file's mtime moves."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("[server]\nport = 9000\n")
        first = load_config_file(config_file)
        stat = config_file.stat()
        times = (stat.st_atime_ns, stat.st_mtime_ns)

        config_file.write_text("[server]\nport = 9001\n")
        os.utime(config_file, ns=times)
        assert load_config_file(config_file) is first

        later = stat.st_mtime_ns + 10_000_000_000
        os.utime(config_file, ns=(later, later))
        assert load_config_file(config_file)["server"]["port"] == 9001

    def test_clear_config_cache(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text("[server]\nport = 9000\n")
        first = load_config_file(config_file)
        clear_config_cache()
        assert load_config_file(config_file) is not first


class TestGetConfig:
    """Tests for get_config function."""

    def test_returns_defaults_with_empty_config(self, tmp_path: Path) -> None:
        """Should return default values when no config sources provide values."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("")

        config = get_config(config_path=config_file, env_reader=EnvReader(env={}))

        assert config.server.port == 8412
        assert config.server.bind == "127.0.0.1"
        assert config.conversion.thumbnail_workers == 3
        assert config.tools.ffmpeg is None
        assert config.logging.level == "info"

    def test_file_values(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            "[conversion]\n"
            "thumbnail_workers = 5\n"
            'default_conflict_mode = "Overwrite"\n'
            "[logging]\n"
            'format = "json"\n'
            "[server]\n"
            "shutdown_timeout = 3\n"
        )

        config = get_config(config_path=config_file, env_reader=EnvReader(env={}))

        assert config.conversion.thumbnail_workers == 5
        assert config.conversion.default_conflict_mode == "overwrite"
        assert config.logging.format == "json"
        assert config.server.shutdown_timeout == 3.0

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text("[server]\nport = 9000\n")
        reader = EnvReader(env={"AETHER_SERVER_PORT": "9100"})

        config = get_config(config_path=config_file, env_reader=reader)

        assert config.server.port == 9100

    def test_cli_overrides_env_and_file(self, tmp_path: Path) -> None:
        """Should give explicit arguments the highest precedence."""
        file_ffmpeg = tmp_path / "file-ffmpeg"
        env_ffmpeg = tmp_path / "env-ffmpeg"
        cli_ffmpeg = tmp_path / "cli-ffmpeg"
        for path in (file_ffmpeg, env_ffmpeg, cli_ffmpeg):
            path.write_text("")
        config_file = tmp_path / "config.toml"
        config_file.write_text(f'[tools]\nffmpeg = "{file_ffmpeg}"\n')
        reader = EnvReader(env={"AETHER_FFMPEG_PATH": str(env_ffmpeg)})

        assert get_config(config_file, env_reader=reader).tools.ffmpeg == env_ffmpeg
        config = get_config(config_file, ffmpeg_path=cli_ffmpeg, env_reader=reader)
        assert config.tools.ffmpeg == cli_ffmpeg

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text("[server]\nport = 70000\n")
        with pytest.raises(ValueError):
            get_config(config_path=config_file, env_reader=EnvReader(env={}))

    def test_non_table_section_ignored(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text('server = "fast"\n')
        config = get_config(config_path=config_file, env_reader=EnvReader(env={}))
        assert config.server.port == 8412
