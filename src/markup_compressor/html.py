"""HTML minification over scanner spans."""

from __future__ import annotations

import logging
import re
from typing import NamedTuple

from markup_compressor.css import minify_css
from markup_compressor.js import minify_js
from markup_compressor.levels import CompressionLevel
from markup_compressor.scanner import scan_markup

logger = logging.getLogger(__name__)

_MARKUP_TOKEN_RE = re.compile(
    r"<[A-Za-z/!?](?:[^>\"']|\"[^\"]*\"|'[^']*')*>|[^<]+|<",
    re.DOTALL,
)
_OPEN_TAG_RE = re.compile(
    r"<(?P<name>[A-Za-z][\w:.-]*)(?P<attrs>(?:[^>\"']|\"[^\"]*\"|'[^']*')*?)(?P<close>\s*/?)>",
    re.DOTALL,
)
_ATTR_RE = re.compile(
    r"(?P<space>\s*)(?P<name>[^\s=/>\"']+)"
    r"(?:(?P<eq>\s*=\s*)(?P<value>\"[^\"]*\"|'[^']*'|[^\s>\"'`=<]+))?"
)
_CLOSE_TAG_SPACE_RE = re.compile(r"</([A-Za-z][\w:.-]*)\s+>")
_TAG_NAME_RE = re.compile(r"</?([A-Za-z][\w:.-]*)")
_BLOCK_CLOSE_RE = re.compile(r"</(?:script|style)\s*>\Z", re.IGNORECASE)
_TYPE_ATTR_RE = re.compile(r"""\stype\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE)
_UNQUOTABLE_RE = re.compile(r"[^\s\"'`=<>]*[^\s\"'`=<>/]")
_WHITESPACE_RE = re.compile(r"\s+")
_LAYOUT_WHITESPACE_RE = re.compile(r"[\n\t]")

_BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "body", "dd", "details", "div",
    "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2",
    "h3", "h4", "h5", "h6", "head", "header", "html", "li", "main", "nav", "ol",
    "p", "section", "summary", "table", "tbody", "td", "tfoot", "th", "thead",
    "title", "tr", "ul",
})

# Attributes that mean nothing when empty.
_DROP_WHEN_EMPTY = frozenset({"class", "id", "style"})

_SCRIPT_TYPES = frozenset({
    "", "text/javascript", "application/javascript", "module",
    "text/ecmascript", "application/ecmascript",
})
_STYLE_TYPES = frozenset({"", "text/css"})


class Piece(NamedTuple):
    kind: str  # "tag", "text" or "raw"
    text: str
    name: str = ""


class Attribute(NamedTuple):
    space: str
    name: str
    eq: str
    value: str | None


def _parse_attributes(attrs: str) -> list[Attribute] | None:
    """Tokenize the attribute part of an open tag.

    Returns None when the tokens do not account for every non-blank
    character, in which case the tag must be left alone.
    """
    attributes: list[Attribute] = []
    pos = 0
    while pos < len(attrs):
        match = _ATTR_RE.match(attrs, pos)
        if match is None:
            return None if attrs[pos:].strip() else attributes
        attributes.append(Attribute(
            match.group("space"),
            match.group("name"),
            match.group("eq") or "",
            match.group("value"),
        ))
        pos = match.end()
    return attributes


def optimize_tag(tag: str, level: CompressionLevel) -> str:
    """Shorten one tag.

    AGGRESSIVE drops empty ``class``/``id``/``style`` attributes, turns
    ``x=""`` into ``x`` and removes quotes around values that do not need
    them. EXTREME also normalizes the whitespace inside the tag.
    """
    if level < CompressionLevel.AGGRESSIVE or tag.startswith(("<!", "<?")):
        return tag
    extreme = level >= CompressionLevel.EXTREME

    if tag.startswith("</"):
        return _CLOSE_TAG_SPACE_RE.sub(r"</\1>", tag) if extreme else tag

    match = _OPEN_TAG_RE.fullmatch(tag)
    if match is None:
        return tag
    attributes = _parse_attributes(match.group("attrs"))
    if attributes is None:
        return tag

    parts = ["<", match.group("name")]
    last_unquoted = False
    for attr in attributes:
        value = attr.value
        if value is not None and value[0] in "\"'":
            inner = value[1:-1]
            if not inner:
                if attr.name.lower() in _DROP_WHEN_EMPTY:
                    continue
                value = None
            elif _UNQUOTABLE_RE.fullmatch(inner):
                value = inner

        parts.append((" " if extreme and attr.space else attr.space) + attr.name)
        if value is not None:
            parts.append(("=" if extreme else attr.eq) + value)
        last_unquoted = value is not None and value[0] not in "\"'"

    close = match.group("close")
    if "/" in close:
        if extreme:
            close = " /" if last_unquoted else "/"
        elif last_unquoted and not close[0].isspace():
            close = " /"
    elif extreme:
        close = ""
    parts.append(close + ">")
    return "".join(parts)


def _block_type(open_tag: str) -> str:
    match = _TYPE_ATTR_RE.search(open_tag)
    if match is None:
        return ""
    return next(group for group in match.groups() if group is not None).strip().lower()


def _split_block(text: str, label: str, level: CompressionLevel) -> list[Piece]:
    """Split a ``<script>``/``<style>`` element and minify its body."""
    open_match = _MARKUP_TOKEN_RE.match(text)
    if open_match is None or not open_match.group().endswith(">"):
        return [Piece("raw", text)]

    open_tag = open_match.group()
    close_match = _BLOCK_CLOSE_RE.search(text, open_match.end())
    body_end = close_match.start() if close_match else len(text)
    body = text[open_match.end():body_end]

    content_type = _block_type(open_tag)
    if label == "script" and content_type in _SCRIPT_TYPES:
        body = minify_js(body, level)
    elif label == "style" and content_type in _STYLE_TYPES:
        body = minify_css(body, level)

    pieces = [Piece("tag", optimize_tag(open_tag, level), label), Piece("raw", body)]
    if close_match:
        pieces.append(Piece("tag", optimize_tag(close_match.group(), level), label))
    return pieces


def _split_markup(text: str, level: CompressionLevel) -> list[Piece]:
    pieces = []
    for match in _MARKUP_TOKEN_RE.finditer(text):
        token = match.group()
        if token.startswith("<") and len(token) > 1:
            name_match = _TAG_NAME_RE.match(token)
            name = name_match.group(1).lower() if name_match else ""
            pieces.append(Piece("tag", optimize_tag(token, level), name))
        else:
            pieces.append(Piece("text", token))
    return pieces


def _pieces(html: str, level: CompressionLevel) -> list[Piece]:
    """Turn the scanned document into tags, text runs and raw regions.

    Adjacent text runs are merged, which happens where a comment was removed.
    """
    pieces: list[Piece] = []
    for span in scan_markup(html):
        text = span.text(html)
        if span.label == "comment":
            continue
        if span.opaque:
            new = [Piece("raw", text)]
        elif span.label in ("script", "style"):
            new = _split_block(text, span.label, level)
        else:
            new = _split_markup(text, level)

        for piece in new:
            if piece.kind == "text" and pieces and pieces[-1].kind == "text":
                pieces[-1] = Piece("text", pieces[-1].text + piece.text)
            else:
                pieces.append(piece)
    return pieces


def _strips_against(neighbour: Piece | None, edge: str, level: CompressionLevel) -> bool:
    """Whether whitespace *edge* of a text run next to *neighbour* can go."""
    if neighbour is None:
        return True
    if level >= CompressionLevel.AGGRESSIVE and neighbour.kind == "tag" and neighbour.name in _BLOCK_TAGS:
        return True
    return level >= CompressionLevel.EXTREME and bool(_LAYOUT_WHITESPACE_RE.search(edge))


def _minify(html: str, level: CompressionLevel) -> str:
    pieces = _pieces(html, level)
    out: list[str] = []

    for index, piece in enumerate(pieces):
        if piece.kind != "text":
            out.append(piece.text)
            continue

        text = piece.text
        core = text.strip()
        if not core:
            continue

        before = pieces[index - 1] if index > 0 else None
        after = pieces[index + 1] if index + 1 < len(pieces) else None
        leading = text[:len(text) - len(text.lstrip())]
        trailing = text[len(text.rstrip()):]

        if leading and not _strips_against(before, leading, level):
            core = " " + core
        if trailing and not _strips_against(after, trailing, level):
            core = core + " "
        out.append(_WHITESPACE_RE.sub(" ", core))

    return "".join(out)


def minify_html(html: str, level: int = CompressionLevel.AGGRESSIVE) -> str:
    """Minify an HTML document or fragment.

    At every level from BASIC on, comments are removed (conditional and
    ``<!--!`` comments excepted), whitespace runs in text collapse to one
    space and whitespace-only text between tags disappears. ``<script>`` and
    ``<style>`` bodies go through :func:`minify_js` and :func:`minify_css`
    at the same level. ``<pre>``, ``<textarea>`` and ``<code>`` elements are
    copied unchanged.

    AGGRESSIVE also trims text just inside block-level elements and shortens
    attributes; EXTREME also normalizes tag whitespace and drops line-break
    whitespace next to any tag.

    Args:
        html: Markup source.
        level: Compression level. NONE and AUTO return *html* unchanged.

    Returns:
        The minified markup, or *html* itself if minification failed.
    """
    level = CompressionLevel.clamp(level)
    if level < CompressionLevel.BASIC:
        return html

    try:
        return _minify(html, level)
    except Exception:
        logger.warning("HTML minification failed, keeping the original markup", exc_info=True)
        return html
