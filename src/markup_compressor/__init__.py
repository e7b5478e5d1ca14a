"""Markup Compressor - Shrink HTML, JavaScript and CSS payloads before they hit the wire."""

from markup_compressor.compressor import (
    CompressedPayload,
    Compressor,
    MinificationResult,
    compress_component,
    minify,
)
from markup_compressor.config import CompressionConfig
from markup_compressor.css import minify_css
from markup_compressor.html import minify_html
from markup_compressor.js import minify_js
from markup_compressor.levels import CompressionLevel, detect_level
from markup_compressor.scanner import Span, SpanKind, scan
from markup_compressor.transport import accepts_gzip, wrap

__version__ = "1.0.0"

__all__ = [
    "Compressor",
    "CompressionConfig",
    "CompressionLevel",
    "CompressedPayload",
    "MinificationResult",
    "minify",
    "minify_html",
    "minify_js",
    "minify_css",
    "compress_component",
    "detect_level",
    "scan",
    "Span",
    "SpanKind",
    "accepts_gzip",
    "wrap",
]
