"""Compression configuration and environment presets."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping

from markup_compressor.levels import CompressionLevel

ENV_DEVELOPMENT = "development"
ENV_STAGING = "staging"
ENV_PRODUCTION = "production"

DEFAULT_BANNER = (
    "<!--\n"
    "  Minified output\n"
    "\n"
    "  This document was minified before delivery: whitespace was collapsed,\n"
    "  comments were stripped and attributes were shortened where safe.\n"
    "  Preformatted regions and script literals are byte-for-byte unchanged.\n"
    "-->\n"
)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclasses.dataclass(frozen=True, slots=True)
class CompressionConfig:
    """Immutable compression policy, read once at start-up."""

    level: CompressionLevel = CompressionLevel.AUTO
    gzip_enabled: bool = True
    banner: str | None = DEFAULT_BANNER
    environment: str = ENV_PRODUCTION

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", CompressionLevel.clamp(self.level))

    def with_level(self, level: int) -> CompressionConfig:
        """Return a copy using *level*, clamped into 0-4."""
        return dataclasses.replace(self, level=CompressionLevel.clamp(level))

    def with_gzip(self, enabled: bool) -> CompressionConfig:
        return dataclasses.replace(self, gzip_enabled=bool(enabled))

    @classmethod
    def for_environment(cls, environment: str) -> CompressionConfig:
        """Build the preset for a deployment environment.

        Unknown environment names fall back to the production preset.
        """
        if environment == ENV_DEVELOPMENT:
            return cls(level=CompressionLevel.NONE, gzip_enabled=False, environment=environment)
        if environment == ENV_STAGING:
            return cls(level=CompressionLevel.BASIC, gzip_enabled=True, environment=environment)
        return cls(level=CompressionLevel.AGGRESSIVE, gzip_enabled=True, environment=ENV_PRODUCTION)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CompressionConfig:
        """Read configuration from environment variables.

        ``APP_ENV`` selects a preset; ``MARKUP_COMPRESSOR_LEVEL``,
        ``MARKUP_COMPRESSOR_GZIP`` and ``MARKUP_COMPRESSOR_BANNER`` override
        individual fields. Values that cannot be parsed are ignored.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            A new CompressionConfig.
        """
        environ = os.environ if environ is None else environ

        app_env = environ.get("APP_ENV", "").strip().lower()
        config = cls.for_environment(app_env) if app_env else cls()

        level = environ.get("MARKUP_COMPRESSOR_LEVEL", "").strip()
        if level:
            try:
                config = config.with_level(int(level))
            except ValueError:
                pass

        gzip_flag = environ.get("MARKUP_COMPRESSOR_GZIP", "").strip().lower()
        if gzip_flag in _TRUTHY:
            config = config.with_gzip(True)
        elif gzip_flag in _FALSY:
            config = config.with_gzip(False)

        banner_flag = environ.get("MARKUP_COMPRESSOR_BANNER", "").strip().lower()
        if banner_flag in _FALSY:
            config = dataclasses.replace(config, banner=None)

        return config
