"""CSS minification over scanner spans."""

from __future__ import annotations

import logging
import re

from markup_compressor.levels import CompressionLevel
from markup_compressor.scanner import scan_style

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"[ \t\f]*(?:\r\n|\r|\n)\s*")
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_SPACE_RE = re.compile(r" ?([{};,]) ?")
# A space before ":" is only syntactic inside a declaration; in a selector
# ("div :hover") it is a descendant combinator and must stay.
_SPACE_BEFORE_COLON_RE = re.compile(r" :(?![^{};]*\{)")
_SPACE_AFTER_COLON_RE = re.compile(r": ")
_REDUNDANT_SEMICOLON_RE = re.compile(r";+(?=\})")
_REPEATED_SEMICOLON_RE = re.compile(r";{2,}")

_ZERO_UNIT_RE = re.compile(
    r"(?<![\w.#-])0+(?:\.0+)?(?:px|em|rem|pt|pc|in|cm|mm|ex|ch|vw|vh|vmin|vmax)\b",
    re.IGNORECASE,
)
_LEADING_ZERO_RE = re.compile(r"(?<![\w.])0+(\.\d+)")
_RGB_RE = re.compile(r"rgb\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)", re.IGNORECASE)

_EXTREME_COMBINATOR_RE = re.compile(r" ?([>~]) ?")
_PAREN_INNER_SPACE_RE = re.compile(r"(?<=\() | (?=\))")

_SIMPLE_IDENT_RE = re.compile(r"[A-Za-z_][\w-]*")
_SIMPLE_URL_RE = re.compile(r"[\w./:#?&=%~+-]+")


def strip_comments(css: str, level: CompressionLevel) -> list[tuple[str, str]]:
    """Split *css* into ``(label, text)`` segments with comments removed.

    Adjacent code is merged into one ``"code"`` segment. A removed comment
    leaves a single space behind so it still separates the tokens around it.
    At BASIC, ``/*! ... */`` comments are kept as their own segments.
    """
    segments: list[tuple[str, str]] = []

    def add_code(text: str) -> None:
        if segments and segments[-1][0] == "code":
            segments[-1] = ("code", segments[-1][1] + text)
        else:
            segments.append(("code", text))

    for span in scan_style(css):
        text = span.text(css)
        if span.label == "comment":
            if level == CompressionLevel.BASIC and text.startswith("/*!"):
                segments.append(("comment", text))
            else:
                add_code(" ")
        elif span.opaque:
            segments.append((span.label, text))
        else:
            add_code(text)
    return segments


def _rgb_to_hex(match: re.Match[str]) -> str:
    channels = [f"{max(0, min(255, int(value))):02x}" for value in match.groups()]
    if all(pair[0] == pair[1] for pair in channels):
        return "#" + "".join(pair[0] for pair in channels)
    return "#" + "".join(channels)


def _compact_code(code: str) -> str:
    code = _WHITESPACE_RE.sub(" ", code)
    code = _PUNCT_SPACE_RE.sub(r"\1", code)
    code = _SPACE_BEFORE_COLON_RE.sub(":", code)
    code = _SPACE_AFTER_COLON_RE.sub(":", code)
    code = _REPEATED_SEMICOLON_RE.sub(";", code)
    code = _REDUNDANT_SEMICOLON_RE.sub("", code)
    code = _ZERO_UNIT_RE.sub("0", code)
    code = _LEADING_ZERO_RE.sub(r"\1", code)
    return _RGB_RE.sub(_rgb_to_hex, code)


def _strip_extreme(code: str, depth: int) -> tuple[str, int]:
    """Drop the whitespace EXTREME removes; *depth* is the open paren count."""
    code = _EXTREME_COMBINATOR_RE.sub(r"\1", code)
    code = _PAREN_INNER_SPACE_RE.sub("", code)

    out: list[str] = []
    for i, ch in enumerate(code):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == " " and depth == 0:
            before = out[-1] if out else ""
            after = code[i + 1] if i + 1 < len(code) else ""
            if "+" in (before, after):
                continue
        out.append(ch)
    return "".join(out), depth


def _unquote(segments: list[tuple[str, str]], index: int) -> str:
    """Return string segment *index* without quotes when that is safe."""
    text = segments[index][1]
    inner = text[1:-1]
    if len(text) < 3 or text[-1] != text[0]:
        return text

    before = segments[index - 1][1].rstrip() if index > 0 else ""
    after = segments[index + 1][1].lstrip() if index + 1 < len(segments) else ""

    if before.endswith("=") and after.startswith("]") and _SIMPLE_IDENT_RE.fullmatch(inner):
        return inner
    if before.lower().endswith("url(") and after.startswith(")") and _SIMPLE_URL_RE.fullmatch(inner):
        return inner
    return text


def _minify(css: str, level: CompressionLevel) -> str:
    segments = strip_comments(css, level)

    if level == CompressionLevel.BASIC:
        parts = [
            _LINE_BREAK_RE.sub("\n", text) if label == "code" else text
            for label, text in segments
        ]
    else:
        compacted = [
            (label, _compact_code(text) if label == "code" else text)
            for label, text in segments
        ]
        parts = []
        depth = 0
        for index, (label, text) in enumerate(compacted):
            if label == "string":
                text = _unquote(compacted, index)
            elif label == "code" and level >= CompressionLevel.EXTREME:
                text, depth = _strip_extreme(text, depth)
            parts.append(text)

    if parts and segments[0][0] == "code":
        parts[0] = parts[0].lstrip()
    if parts and segments[-1][0] == "code":
        parts[-1] = parts[-1].rstrip()
    return "".join(parts)


def minify_css(css: str, level: int = CompressionLevel.AGGRESSIVE) -> str:
    """Minify a stylesheet.

    BASIC only strips comments (keeping ``/*!`` ones) and trims lines. From
    AGGRESSIVE on, whitespace is collapsed, redundant punctuation dropped and
    numeric and colour literals shortened. EXTREME also removes whitespace
    around combinators and inside parentheses. Strings and ``url()`` values
    are never rewritten, except that quotes around simple attribute-selector
    and url values are dropped.

    Args:
        css: Stylesheet source (the body of a ``<style>`` block).
        level: Compression level. NONE and AUTO return *css* unchanged.

    Returns:
        The minified stylesheet, or *css* itself if minification failed.
    """
    level = CompressionLevel.clamp(level)
    if level < CompressionLevel.BASIC:
        return css

    try:
        return _minify(css, level)
    except Exception:
        logger.warning("CSS minification failed, keeping the original stylesheet", exc_info=True)
        return css
