"""Tests for compression configuration and presets."""

import pytest

from markup_compressor.config import DEFAULT_BANNER, CompressionConfig
from markup_compressor.levels import CompressionLevel


class TestPresets:
    def test_defaults(self):
        config = CompressionConfig()
        assert config.level == CompressionLevel.AUTO
        assert config.gzip_enabled is True
        assert config.banner == DEFAULT_BANNER
        assert config.environment == "production"

    @pytest.mark.parametrize("environment,level,gzip_enabled", [
        ("development", CompressionLevel.NONE, False),
        ("staging", CompressionLevel.BASIC, True),
        ("production", CompressionLevel.AGGRESSIVE, True),
    ])
    def test_environment_presets(self, environment: str, level, gzip_enabled: bool):
        config = CompressionConfig.for_environment(environment)
        assert config.level == level
        assert config.gzip_enabled is gzip_enabled
        assert config.environment == environment

    def test_unknown_environment_is_production(self):
        config = CompressionConfig.for_environment("qa")
        assert config.level == CompressionLevel.AGGRESSIVE
        assert config.environment == "production"

    def test_level_clamped_on_construction(self):
        assert CompressionConfig(level=12).level == CompressionLevel.EXTREME
        assert isinstance(CompressionConfig(level=3).level, CompressionLevel)

    def test_with_level_returns_copy(self):
        config = CompressionConfig()
        changed = config.with_level(-1)
        assert changed.level == CompressionLevel.NONE
        assert config.level == CompressionLevel.AUTO

    def test_frozen(self):
        with pytest.raises(AttributeError):
            CompressionConfig().level = CompressionLevel.NONE


class TestFromEnv:
    def test_empty_environment(self):
        assert CompressionConfig.from_env({}) == CompressionConfig()

    def test_app_env_selects_preset(self):
        config = CompressionConfig.from_env({"APP_ENV": " Development "})
        assert config.level == CompressionLevel.NONE
        assert config.gzip_enabled is False

    def test_overrides(self):
        config = CompressionConfig.from_env({
            "APP_ENV": "staging",
            "MARKUP_COMPRESSOR_LEVEL": "4",
            "MARKUP_COMPRESSOR_GZIP": "off",
            "MARKUP_COMPRESSOR_BANNER": "false",
        })
        assert config.level == CompressionLevel.EXTREME
        assert config.gzip_enabled is False
        assert config.banner is None
        assert config.environment == "staging"

    def test_invalid_level_ignored(self):
        config = CompressionConfig.from_env({"MARKUP_COMPRESSOR_LEVEL": "fast"})
        assert config.level == CompressionLevel.AUTO

    def test_level_override_is_clamped(self):
        assert CompressionConfig.from_env({"MARKUP_COMPRESSOR_LEVEL": "9"}).level == CompressionLevel.EXTREME

    def test_unrecognized_gzip_flag_ignored(self):
        assert CompressionConfig.from_env({"MARKUP_COMPRESSOR_GZIP": "maybe"}).gzip_enabled is True

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("MARKUP_COMPRESSOR_LEVEL", "2")
        monkeypatch.delenv("APP_ENV", raising=False)
        assert CompressionConfig.from_env().level == CompressionLevel.BASIC
