"""Compression levels and size-based level detection."""

from __future__ import annotations

import enum

# Payload byte-length thresholds used when the level is AUTO.
BASIC_THRESHOLD = 1024
AGGRESSIVE_THRESHOLD = 10240


class CompressionLevel(enum.IntEnum):
    """Ordinal compression level. Higher levels do strictly more work."""

    NONE = 0
    AUTO = 1
    BASIC = 2
    AGGRESSIVE = 3
    EXTREME = 4

    @classmethod
    def clamp(cls, value: int) -> CompressionLevel:
        """Clamp an arbitrary integer into the valid range instead of raising."""
        return cls(max(cls.NONE, min(cls.EXTREME, int(value))))


def detect_level(content: str | bytes) -> CompressionLevel:
    """Pick a concrete level from the UTF-8 byte length of *content*."""
    size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)

    if size < BASIC_THRESHOLD:
        return CompressionLevel.BASIC
    if size < AGGRESSIVE_THRESHOLD:
        return CompressionLevel.AGGRESSIVE
    return CompressionLevel.EXTREME
