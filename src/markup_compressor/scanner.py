"""Literal scanner: splits markup, script and style text into spans.

Every scanner returns an ordered list of :class:`Span` objects that partition
the input completely. Opaque spans must be copied to the output unchanged;
transformable spans may be rewritten by the minifiers. The scanners never
raise on malformed input: anything left unterminated simply runs to the end.
"""

from __future__ import annotations

import dataclasses
import enum
import re


class SpanKind(enum.Enum):
    OPAQUE = "opaque"
    TRANSFORMABLE = "transformable"


@dataclasses.dataclass(frozen=True, slots=True)
class Span:
    """A half-open ``[start, end)`` range over the scanned text."""

    start: int
    end: int
    kind: SpanKind
    label: str  # "markup", "code", "comment", "string", "template", "regex",
                # "url", "pre", "textarea", "code-element", "script", "style",
                # "conditional-comment"

    @property
    def opaque(self) -> bool:
        return self.kind is SpanKind.OPAQUE

    def text(self, source: str) -> str:
        return source[self.start:self.end]


# --- Markup ---

_MARKUP_REGION_RE = re.compile(
    r"<!--|<(script|style|pre|textarea|code)(?=[\s>/])",
    re.IGNORECASE,
)

_PROTECTED_ELEMENTS = {"pre": "pre", "textarea": "textarea", "code": "code-element"}

# Comments that must survive minification.
_SURVIVING_COMMENT_RE = re.compile(r"<!--(?:\[if\b|!)", re.IGNORECASE)

# --- Script ---

_REGEX_PRECEDING_WORDS = frozenset({
    "return", "typeof", "case", "do", "else", "in", "of", "new", "delete",
    "void", "throw", "yield", "await", "instanceof",
})
_WORD_CHAR_RE = re.compile(r"[\w$]")
_LINE_BREAK_RE = re.compile(r"[\r\n]")

# --- Style ---

# Unquoted url(...) only; a quoted argument is scanned as a string.
_URL_OPEN_RE = re.compile(r"(?<![\w-])url\(\s*(?![\"'\s])", re.IGNORECASE)


def _close_tag_end(text: str, name: str, start: int) -> int:
    """Return the end of the first ``</name>`` at or after *start*, or len(text)."""
    match = re.compile(rf"</{name}\s*>", re.IGNORECASE).search(text, start)
    return match.end() if match else len(text)


def scan_markup(text: str) -> list[Span]:
    """Scan an HTML document or fragment.

    ``<pre>``, ``<textarea>`` and ``<code>`` elements, including their tags,
    become opaque spans, as do conditional (``<!--[if``) and bang
    (``<!--!``) comments. ``<script>`` and ``<style>`` elements are reported as
    their own transformable spans so that markup inside their bodies is never
    mistaken for a protected element.
    """
    spans: list[Span] = []
    pos = 0
    markup_start = 0

    while True:
        match = _MARKUP_REGION_RE.search(text, pos)
        if not match:
            break

        start = match.start()
        name = (match.group(1) or "").lower()

        if not name:
            close = text.find("-->", start + 4)
            end = len(text) if close == -1 else close + 3
            if _SURVIVING_COMMENT_RE.match(text, start):
                kind, label = SpanKind.OPAQUE, "conditional-comment"
            else:
                kind, label = SpanKind.TRANSFORMABLE, "comment"
        elif name in _PROTECTED_ELEMENTS:
            end = _close_tag_end(text, name, match.end())
            kind, label = SpanKind.OPAQUE, _PROTECTED_ELEMENTS[name]
        else:
            end = _close_tag_end(text, name, match.end())
            kind, label = SpanKind.TRANSFORMABLE, name

        if markup_start < start:
            spans.append(Span(markup_start, start, SpanKind.TRANSFORMABLE, "markup"))
        spans.append(Span(start, end, kind, label))
        pos = markup_start = end

    if markup_start < len(text):
        spans.append(Span(markup_start, len(text), SpanKind.TRANSFORMABLE, "markup"))
    return spans


def _string_end(text: str, start: int) -> int:
    """End of the quoted string opening at *start* (escape aware)."""
    quote = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return n


def _interpolation_end(text: str, start: int) -> int:
    """End of a ``${...}`` body whose first character is at *start*."""
    depth = 1
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'":
            i = _string_end(text, i)
            continue
        if ch == "`":
            i = _template_end(text, i)
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return n


def _template_end(text: str, start: int) -> int:
    """End of the template literal opening at *start*, interpolations included."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1
        if ch == "$" and text.startswith("{", i + 1):
            i = _interpolation_end(text, i + 2)
            continue
        i += 1
    return n


def _regex_end(text: str, start: int) -> int | None:
    """End of the regex literal candidate at *start*, flags included.

    Returns None when the candidate reaches a line break or the end of input
    first, meaning the slash was a division operator after all.
    """
    i = start + 1
    n = len(text)
    in_class = False
    while i < n:
        ch = text[i]
        if ch in "\r\n":
            return None
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            i += 1
            while i < n and (text[i].isalnum() or text[i] in "_$"):
                i += 1
            return i
        i += 1
    return None


def _regex_allowed(text: str, last: int, after_literal: bool) -> bool:
    """Decide whether a ``/`` may open a regex literal.

    Args:
        text: Script source.
        last: Index of the last significant code character, or -1.
        after_literal: Whether that character closed a string/template/regex.
    """
    if last < 0:
        return True
    if after_literal:
        return False

    ch = text[last]
    if ch in ")]}":
        return False
    if _WORD_CHAR_RE.match(ch):
        start = last
        while start > 0 and _WORD_CHAR_RE.match(text[start - 1]):
            start -= 1
        return text[start:last + 1] in _REGEX_PRECEDING_WORDS
    return True


def scan_script(text: str) -> list[Span]:
    """Scan JavaScript source into code, comment and literal spans.

    The scanner runs one pass through the states InCode, InString,
    InTemplate, InRegexCandidate, InLineComment and InBlockComment. String,
    template and regex literals are opaque. Comments are transformable so the
    comment stripper can remove them.
    """
    spans: list[Span] = []
    n = len(text)
    i = 0
    code_start = 0
    last = -1
    after_literal = False

    while i < n:
        ch = text[i]

        if ch in "\"'":
            end, label = _string_end(text, i), "string"
        elif ch == "`":
            end, label = _template_end(text, i), "template"
        elif text.startswith("//", i):
            newline = _LINE_BREAK_RE.search(text, i)
            end, label = (newline.start() if newline else n), "comment"
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            end, label = (n if close == -1 else close + 2), "comment"
        elif ch == "/" and _regex_allowed(text, last, after_literal):
            regex_end = _regex_end(text, i)
            if regex_end is None:
                last, after_literal = i, False
                i += 1
                continue
            end, label = regex_end, "regex"
        else:
            if not ch.isspace():
                last, after_literal = i, False
            i += 1
            continue

        if code_start < i:
            spans.append(Span(code_start, i, SpanKind.TRANSFORMABLE, "code"))
        if label == "comment":
            spans.append(Span(i, end, SpanKind.TRANSFORMABLE, label))
        else:
            spans.append(Span(i, end, SpanKind.OPAQUE, label))
            last, after_literal = end - 1, True
        i = code_start = end

    if code_start < n:
        spans.append(Span(code_start, n, SpanKind.TRANSFORMABLE, "code"))
    return spans


def scan_style(text: str) -> list[Span]:
    """Scan a stylesheet into code, comment, string and ``url(...)`` spans."""
    spans: list[Span] = []
    n = len(text)
    i = 0
    code_start = 0

    while i < n:
        ch = text[i]

        if ch in "\"'":
            end, kind, label = _string_end(text, i), SpanKind.OPAQUE, "string"
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            end, kind, label = (n if close == -1 else close + 2), SpanKind.TRANSFORMABLE, "comment"
        elif ch in "uU" and _URL_OPEN_RE.match(text, i):
            close = text.find(")", i)
            end, kind, label = (n if close == -1 else close + 1), SpanKind.OPAQUE, "url"
        else:
            i += 1
            continue

        if code_start < i:
            spans.append(Span(code_start, i, SpanKind.TRANSFORMABLE, "code"))
        spans.append(Span(i, end, kind, label))
        i = code_start = end

    if code_start < n:
        spans.append(Span(code_start, n, SpanKind.TRANSFORMABLE, "code"))
    return spans


_SCANNERS = {
    "markup": scan_markup,
    "script": scan_script,
    "style": scan_style,
}


def scan(text: str, context: str = "markup") -> list[Span]:
    """Scan *text* as markup, script or style.

    Raises:
        ValueError: If *context* is not one of "markup", "script" or "style".
    """
    try:
        scanner = _SCANNERS[context]
    except KeyError:
        raise ValueError(f"Unknown scan context '{context}'") from None
    return scanner(text)
