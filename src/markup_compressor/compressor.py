"""Level selection and orchestration of the minifiers and transport."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import zlib
from typing import Any

from markup_compressor.config import CompressionConfig
from markup_compressor.css import minify_css
from markup_compressor.html import minify_html
from markup_compressor.js import minify_js
from markup_compressor.levels import CompressionLevel, detect_level
from markup_compressor.transport import accepts_gzip, wrap

logger = logging.getLogger(__name__)

_MINIFIERS = {
    "HTML": minify_html,
    "JS": minify_js,
    "CSS": minify_css,
}

# File suffixes understood by compress_file.
_SUFFIX_KINDS = {
    ".html": "HTML",
    ".htm": "HTML",
    ".js": "JS",
    ".mjs": "JS",
    ".css": "CSS",
}


@dataclasses.dataclass(frozen=True, slots=True)
class MinificationResult:
    """Output of one minifier stage."""

    text: str
    changed: bool

    def __str__(self) -> str:
        return self.text


@dataclasses.dataclass(frozen=True, slots=True)
class CompressedPayload:
    """Bytes ready for the wire, plus what a caller needs to send them."""

    body: bytes                   # minified (and possibly gzipped) payload
    gzipped: bool
    content_type: str | None
    level: CompressionLevel       # effective level, AUTO already resolved
    original_length: int          # UTF-8 bytes of the input
    compressed_length: int        # len(body)
    ratio: float                  # compressed_length / original_length
    savings_pct: float            # (1 - ratio) * 100

    @property
    def content_length(self) -> int:
        return len(self.body)

    def headers(self) -> dict[str, str]:
        """Headers describing the body; the caller decides whether to emit them."""
        headers = {"Content-Length": str(self.content_length)}
        if self.gzipped:
            headers["Content-Encoding"] = "gzip"
            headers["Vary"] = "Accept-Encoding"
        if self.content_type:
            headers["Content-Type"] = f"{self.content_type}; charset=UTF-8"
        return headers

    def __bytes__(self) -> bytes:
        return self.body


def _normalize_kind(kind: str) -> str:
    normalized = kind.strip().upper()
    if normalized not in _MINIFIERS:
        raise ValueError(f"Unknown content kind '{kind}', expected one of {', '.join(_MINIFIERS)}")
    return normalized


def _resolve_level(level: int, content: str) -> CompressionLevel:
    level = CompressionLevel.clamp(level)
    if level == CompressionLevel.AUTO:
        level = detect_level(content)
        logger.debug("Auto-detected level %s for %d characters", level.name, len(content))
    return level


def minify(content: str, level: int, kind: str = "HTML") -> MinificationResult:
    """Run the minifier for *kind* at *level*.

    Args:
        content: Source text.
        level: Compression level, clamped into 0-4. AUTO is resolved from the
            size of *content*; NONE returns it unchanged.
        kind: "HTML", "JS" or "CSS", case-insensitive.

    Returns:
        MinificationResult with the minified text.

    Raises:
        ValueError: If *kind* is not recognized.
    """
    minifier = _MINIFIERS[_normalize_kind(kind)]
    level = _resolve_level(level, content)
    if level == CompressionLevel.NONE:
        return MinificationResult(content, False)

    text = minifier(content, level)
    return MinificationResult(text, text != content)


def _payload(
    body: bytes,
    original_length: int,
    level: CompressionLevel,
    content_type: str | None,
    gzip_allowed: bool,
) -> CompressedPayload:
    wrapped = wrap(body, gzip_allowed)
    ratio = len(wrapped) / original_length if original_length else 1.0
    return CompressedPayload(
        body=wrapped,
        gzipped=gzip_allowed,
        content_type=content_type,
        level=level,
        original_length=original_length,
        compressed_length=len(wrapped),
        ratio=round(ratio, 4),
        savings_pct=round((1 - ratio) * 100, 1),
    )


class Compressor:
    """Applies a :class:`CompressionConfig` to outgoing payloads.

    The config is immutable; the setters swap in a new one, so concurrent
    readers always see a consistent config.
    """

    def __init__(self, config: CompressionConfig | None = None) -> None:
        self.config = config or CompressionConfig()

    def set_level(self, level: int) -> None:
        self.config = self.config.with_level(level)

    def get_level(self) -> int:
        return int(self.config.level)

    def set_gzip_enabled(self, enabled: bool) -> None:
        self.config = self.config.with_gzip(enabled)

    def compress(
        self,
        content: str,
        content_type: str | None = None,
        accept_encoding: str | None = None,
    ) -> CompressedPayload:
        """Minify a markup payload, prepend the banner and gzip if allowed.

        At NONE the content goes out untouched: no banner and no gzip.

        Args:
            content: HTML document or fragment.
            content_type: MIME type for the Content-Type header, if any.
            accept_encoding: The client's Accept-Encoding header. None means
                the client did not send one, so no gzip.

        Returns:
            CompressedPayload with the body and size statistics.
        """
        config = self.config
        original_length = len(content.encode("utf-8"))
        level = _resolve_level(config.level, content)

        if level == CompressionLevel.NONE:
            return _payload(content.encode("utf-8"), original_length, level, content_type, False)

        text = minify_html(content, level)
        if config.banner:
            text = config.banner + text

        gzip_allowed = config.gzip_enabled and accepts_gzip(accept_encoding)
        logger.debug("gzip %s for Accept-Encoding %r", "on" if gzip_allowed else "off", accept_encoding)
        return _payload(text.encode("utf-8"), original_length, level, content_type, gzip_allowed)

    def compress_with_level(self, content: str, level: int, kind: str = "HTML") -> str:
        """Minify *content* at an explicit level, without banner or gzip.

        Raises:
            ValueError: If *kind* is not "HTML", "JS" or "CSS".
        """
        return minify(content, level, kind).text

    def compress_json(self, data: Any, accept_encoding: str | None = None) -> CompressedPayload:
        """Encode *data* as compact JSON and gzip it if allowed.

        Nothing is minified, so the payload reports level NONE.

        Raises:
            ValueError: If *data* cannot be JSON-encoded.
        """
        try:
            text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        except TypeError as e:
            raise ValueError(f"Data is not JSON serializable: {e}") from e

        body = text.encode("utf-8")
        gzip_allowed = self.config.gzip_enabled and accepts_gzip(accept_encoding)
        return _payload(body, len(body), CompressionLevel.NONE, "application/json", gzip_allowed)

    def compress_component(self, content: str) -> str:
        """Minify an HTML fragment at EXTREME, without banner or gzip."""
        return compress_component(content)

    def compress_file(self, file_path: str, level: int | None = None, encoding: str = "utf-8") -> str:
        """Minify a ``.html``, ``.js`` or ``.css`` file.

        Args:
            file_path: Path to the file; its suffix picks the minifier.
            level: Compression level. Defaults to the configured level.
            encoding: File encoding (default: utf-8).

        Returns:
            The minified file content.

        Raises:
            ValueError: If the file suffix is not supported.
            FileNotFoundError: If the file does not exist.
        """
        suffix = os.path.splitext(file_path)[1].lower()
        kind = _SUFFIX_KINDS.get(suffix)
        if kind is None:
            raise ValueError(f"Unsupported file type '{suffix}'")

        with open(file_path, encoding=encoding) as f:
            content = f.read()
        return minify(content, self.config.level if level is None else level, kind).text

    def describe(self) -> dict[str, Any]:
        """Summarize the active configuration."""
        config = self.config
        return {
            "environment": config.environment,
            "level": int(config.level),
            "level_name": config.level.name,
            "gzip_enabled": config.gzip_enabled,
            "banner": config.banner is not None,
            "zlib_version": zlib.ZLIB_VERSION,
        }


def compress_component(content: str) -> str:
    """Minify an HTML fragment at EXTREME."""
    return minify_html(content, CompressionLevel.EXTREME)
