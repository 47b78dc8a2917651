"""Tests for configuration dataclasses."""

from __future__ import annotations

import pytest

from aether.config.models import (
    AetherConfig,
    ConversionSettings,
    LoggingConfig,
    ServerConfig,
)


class TestLoggingConfig:
    """Tests for LoggingConfig validation."""

    def test_defaults(self) -> None:
        config = LoggingConfig()
        assert config.level == "info"
        assert config.format == "text"
        assert config.file is None

    def test_level_is_case_insensitive(self) -> None:
        assert LoggingConfig(level="DEBUG").level == "DEBUG"

    def test_invalid_level(self) -> None:
        with pytest.raises(ValueError, match="level must be one of"):
            LoggingConfig(level="verbose")

    def test_invalid_format(self) -> None:
        with pytest.raises(ValueError, match="format must be one of"):
            LoggingConfig(format="xml")

    def test_invalid_rotation(self) -> None:
        with pytest.raises(ValueError):
            LoggingConfig(max_bytes=0)
        with pytest.raises(ValueError):
            LoggingConfig(backup_count=-1)


class TestConversionSettings:
    """Tests for ConversionSettings validation."""

    def test_defaults(self) -> None:
        settings = ConversionSettings()
        assert settings.thumbnail_workers == 3
        assert settings.file_info_workers == 10
        assert settings.progress_interval == 0.1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"thumbnail_workers": 0},
            {"file_info_workers": 0},
            {"progress_interval_ms": -1},
            {"diagnostic_tail_lines": 0},
            {"default_quality": 101},
        ],
    )
    def test_rejects_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            ConversionSettings(**kwargs)


class TestServerConfig:
    """Tests for ServerConfig validation."""

    def test_defaults_bind_localhost(self) -> None:
        config = ServerConfig()
        assert config.bind == "127.0.0.1"
        assert config.port == 8412

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_range(self, port: int) -> None:
        with pytest.raises(ValueError, match="port must be 1-65535"):
            ServerConfig(port=port)

    def test_shutdown_timeout_positive(self) -> None:
        with pytest.raises(ValueError):
            ServerConfig(shutdown_timeout=0)


def test_aether_config_sections_are_independent() -> None:
    """Should not share section instances between configs."""
    a, b = AetherConfig(), AetherConfig()
    assert a.server is not b.server
    assert a.conversion is not b.conversion
