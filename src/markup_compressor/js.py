"""JavaScript minification with a newline-aware semicolon heuristic.

The script is scanned into code, comment and literal spans, then turned into
a flat token stream. String, template and regex literals become single tokens
whose text is sliced straight from the source, so no step below can ever
rewrite them. Whitespace is then dropped wherever the grammar allows it; where
a line break is removed between two statements, a ``;`` is inserted.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
import re
from typing import NamedTuple

from markup_compressor.levels import CompressionLevel
from markup_compressor.scanner import scan_script

logger = logging.getLogger(__name__)

_CODE_TOKEN_RE = re.compile(r"(?P<space>\s+)|(?P<word>[\w$]+)|(?P<punct>\+\+|--|.)", re.DOTALL)
_NEWLINE_RE = re.compile(r"[\r\n\u2028\u2029]")
_WORD_CHAR_RE = re.compile(r"[\w$]")

_WHITESPACE_KINDS = frozenset({"space", "newline"})
_LITERAL_KINDS = frozenset({"string", "template", "regex"})

# A line break after these is always a statement end.
_RESTRICTED_WORDS = frozenset({"return", "break", "continue", "throw", "yield"})

# Reserved words that cannot end a statement.
_NO_ASI_AFTER = frozenset({
    "else", "do", "try", "finally", "typeof", "instanceof", "in", "new",
    "delete", "void", "await", "var", "let", "const", "function", "class",
    "extends", "case", "export", "import", "default", "with", "switch",
})

# Reserved words that continue the expression on the previous line.
_INFIX_WORDS = frozenset({"in", "instanceof", "extends"})

# Contextual words: plain identifiers outside an import or export statement.
_MODULE_WORDS = frozenset({"import", "export"})
_MODULE_CONNECTIVES = frozenset({"from", "as"})

# Contextual words: plain identifiers outside a class body.
_CLASS_MODIFIERS = frozenset({"get", "set", "static"})

# Owners of a parenthesised header that is followed by a body, not a newline.
_HEADER_OWNERS = frozenset({"if", "for", "while", "with"})

_OPENERS = frozenset({"(", "[", "{"})
_CLOSERS = frozenset({")", "]", "}"})

# Punctuation that can only start a new expression.
_PREFIX_PUNCT = frozenset({"++", "--", "!", "~"})

# Statement keywords that get a space after an inserted ";" with keyword_spacing.
_ASI_KEYWORDS = frozenset({
    "const", "let", "var", "function", "class", "if", "for", "while", "do",
    "try", "switch", "return", "export", "import", "new", "yield",
})


class Token(NamedTuple):
    kind: str  # "word", "punct", "space", "newline", "comment", "string", "template", "regex"
    text: str


@dataclasses.dataclass(slots=True)
class ASIContext:
    """State of one compaction pass over a token stream.

    Attributes:
        tokens: The full token stream being compacted.
        level: Compression level of the pass.
        keyword_spacing: Whether an inserted ``;`` before a statement keyword
            is followed by a space.
        position: Index in ``tokens`` of the token being placed.
        history: Significant tokens emitted so far, inserted ``;`` included.
        brackets: Owner of each currently open bracket. The owner is the word
            right before the opener (``if`` in ``if (``, ``for`` in
            ``for await (``), ``"do-while"`` for the condition of a do-while
            loop, ``"class"`` for a class body, ``"import"`` for the braces of
            an import or export clause, or None.
        openers: The currently open brackets themselves, innermost last.
        owners: Owner of each closing bracket, keyed by its index in history.
        out: Output fragments.
    """

    tokens: list[Token]
    level: CompressionLevel
    keyword_spacing: bool = False
    position: int = 0
    history: list[Token] = dataclasses.field(default_factory=list)
    brackets: list[str | None] = dataclasses.field(default_factory=list)
    openers: list[str] = dataclasses.field(default_factory=list)
    owners: dict[int, str | None] = dataclasses.field(default_factory=dict)
    out: list[str] = dataclasses.field(default_factory=list)

    def previous(self) -> Token | None:
        return self.history[-1] if self.history else None

    def owner_of(self, index: int) -> str | None:
        return self.owners.get(index % len(self.history)) if self.history else None

    def follows_dot(self, index: int) -> bool:
        """Whether history[index] comes right after ``.`` or ``?.``, as a property name does."""
        if not self.history:
            return False
        index %= len(self.history)
        return index > 0 and self.history[index - 1] == ("punct", ".")

    def closes_do_block(self, index: int) -> bool:
        """Whether history[index] is the ``}`` closing a ``do`` body."""
        if not -len(self.history) <= index < len(self.history):
            return False
        token = self.history[index]
        return token == ("punct", "}") and self.owner_of(index) == "do"

    def inside_group(self) -> bool:
        """Whether the innermost open bracket is ``(`` or ``[``, where a line break never ends a statement."""
        return bool(self.openers) and self.openers[-1] != "{"

    def in_class_body(self) -> bool:
        return bool(self.brackets) and self.brackets[-1] == "class"

    def in_module_clause(self) -> bool:
        """Whether the statement being emitted is an ``import`` or ``export``.

        Walks back over the current statement, skipping bracketed groups.
        Only the braces of an import or export clause are skipped at the top
        level; any other ``}`` ends the walk, as does ``;``.
        """
        depth = 0
        for index in range(len(self.history) - 1, -1, -1):
            token = self.history[index]
            if token.kind != "punct":
                if (
                    depth == 0
                    and token.kind == "word"
                    and token.text in _MODULE_WORDS
                    and not self.follows_dot(index)
                ):
                    return True
                continue
            if token.text in _CLOSERS:
                if depth == 0 and token.text == "}" and self.owners.get(index) != "import":
                    return False
                depth += 1
            elif token.text in _OPENERS:
                if depth == 0:
                    return bool(self.brackets) and self.brackets[-1] == "import"
                depth -= 1
            elif depth == 0 and token.text == ";":
                return False
        return False

    def opens_class_body(self) -> bool:
        """Whether a ``{`` placed now would open a class body.

        True when ``class`` starts the current heritage, as in
        ``class A extends mix(B) {``.
        """
        depth = 0
        for index in range(len(self.history) - 1, -1, -1):
            token = self.history[index]
            if token.kind == "punct":
                if token.text == "}" and depth == 0:
                    return False
                if token.text in _CLOSERS:
                    depth += 1
                elif token.text in _OPENERS:
                    if depth == 0:
                        return False
                    depth -= 1
                elif depth == 0 and token.text == ";":
                    return False
            elif depth == 0 and token == ("word", "class") and not self.follows_dot(index):
                return True
        return False

    def _owner_for(self, opener: str) -> str | None:
        prev = self.previous()
        owner = None
        if prev is not None and prev.kind == "word" and not self.follows_dot(-1):
            owner = prev.text
            if owner == "while" and self.closes_do_block(-2):
                owner = "do-while"
            elif owner == "await" and len(self.history) >= 2 and self.history[-2] == ("word", "for"):
                owner = "for"
        if opener == "{":
            if owner in _MODULE_WORDS:
                owner = "import"
            elif prev == ("punct", ",") and self.in_module_clause():
                owner = "import"
            elif owner not in ("do", "else", "try", "finally") and self.opens_class_body():
                owner = "class"
        return owner

    def lookahead(self, count: int) -> list[Token]:
        """Return up to *count* significant tokens after the current one."""
        upcoming = (
            token
            for token in itertools.islice(self.tokens, self.position + 1, None)
            if token.kind not in _WHITESPACE_KINDS
        )
        return list(itertools.islice(upcoming, count))

    def emit(self, token: Token) -> None:
        if token.kind == "punct" and token.text in _OPENERS:
            self.brackets.append(self._owner_for(token.text))
            self.openers.append(token.text)
        elif token.kind == "punct" and token.text in _CLOSERS:
            self.owners[len(self.history)] = self.brackets.pop() if self.brackets else None
            if self.openers:
                self.openers.pop()

        self.history.append(token)
        self.out.append(token.text)


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens, keeping literals and comments whole."""
    tokens: list[Token] = []
    for span in scan_script(source):
        text = span.text(source)
        if span.label != "code":
            tokens.append(Token(span.label, text))
            continue
        for match in _CODE_TOKEN_RE.finditer(text):
            kind, value = match.lastgroup, match.group()
            if kind == "space" and _NEWLINE_RE.search(value):
                kind = "newline"
            tokens.append(Token(kind, value))
    return tokens


def strip_comments(tokens: list[Token], level: CompressionLevel) -> list[Token]:
    """Replace comments with the whitespace they stood for.

    At BASIC, ``/*! ... */`` comments are kept.
    """
    stripped: list[Token] = []
    for token in tokens:
        if token.kind != "comment":
            stripped.append(token)
        elif level == CompressionLevel.BASIC and token.text.startswith("/*!"):
            stripped.append(token)
        elif _NEWLINE_RE.search(token.text):
            stripped.append(Token("newline", "\n"))
        else:
            stripped.append(Token("space", " "))
    return stripped


def _ends_statement(ctx: ASIContext, prev: Token) -> bool:
    if prev.kind in _LITERAL_KINDS:
        return True
    if prev.kind == "word":
        if ctx.follows_dot(-1):
            return True
        if prev.text in _CLASS_MODIFIERS:
            return not ctx.in_class_body()
        if prev.text in _MODULE_CONNECTIVES:
            return not ctx.in_module_clause()
        return prev.text not in _NO_ASI_AFTER
    if prev.text == ")":
        return ctx.owner_of(-1) not in _HEADER_OWNERS
    return prev.text in ("]", "}", "++", "--")


def _starts_function(ctx: ASIContext) -> bool:
    upcoming = [token.text for token in ctx.lookahead(2)]
    return upcoming[:1] == ["function"] or upcoming == ["async", "function"]


def _needs_semicolon(ctx: ASIContext, nxt: Token) -> bool:
    """Decide whether the line break before *nxt* separates two statements."""
    prev = ctx.previous()
    if prev is None or ctx.inside_group():
        return False

    if prev.kind == "word" and prev.text in _RESTRICTED_WORDS and not ctx.follows_dot(-1):
        return nxt.text not in (";", "}")
    if not _ends_statement(ctx, prev):
        return False

    if nxt.kind == "word":
        if nxt.text in ("else", "catch", "finally"):
            return prev.text != "}"
        if nxt.text == "while":
            return not ctx.closes_do_block(-1)
        if nxt.text in _MODULE_CONNECTIVES:
            return not ctx.in_module_clause()
        return nxt.text not in _INFIX_WORDS
    if nxt.kind in ("string", "regex"):
        return True
    if nxt.kind == "punct":
        if nxt.text in _PREFIX_PUNCT:
            return True
        if nxt.text == "(":
            return _starts_function(ctx)
    return False


def _needs_space(prev: Token, nxt: Token) -> bool:
    """Whether *prev* and *nxt* would fuse into a different token if joined."""
    last, first = prev.text[-1], nxt.text[0]
    if _WORD_CHAR_RE.match(first) and (_WORD_CHAR_RE.match(last) or prev.kind == "regex"):
        return True
    if last in "+-" and first == last:
        return True
    if prev.kind == "word" and prev.text.isdigit() and nxt.text == ".":
        return True
    return last == "/" and nxt.kind == "regex"


def _separate(ctx: ASIContext, gap: str, token: Token) -> None:
    """Emit what replaces the whitespace *gap* before *token*."""
    if ctx.level == CompressionLevel.BASIC:
        ctx.out.append("\n" if gap == "newline" else " ")
        return

    if gap == "newline" and _needs_semicolon(ctx, token):
        ctx.emit(Token("punct", ";"))
        if ctx.keyword_spacing and ctx.level < CompressionLevel.EXTREME and token.text in _ASI_KEYWORDS:
            ctx.out.append(" ")
        return

    if _needs_space(ctx.history[-1], token):
        ctx.out.append(" ")


def compact(tokens: list[Token], level: CompressionLevel, keyword_spacing: bool = False) -> str:
    """Join *tokens*, deciding a separator only where whitespace was."""
    ctx = ASIContext(tokens=tokens, level=level, keyword_spacing=keyword_spacing)
    gap = None

    for position, token in enumerate(tokens):
        if token.kind in _WHITESPACE_KINDS:
            if gap != "newline":
                gap = token.kind
            continue

        ctx.position = position
        if gap and ctx.history:
            _separate(ctx, gap, token)
        gap = None
        ctx.emit(token)

    return "".join(ctx.out)


def minify_js(js: str, level: int = CompressionLevel.AGGRESSIVE, keyword_spacing: bool = False) -> str:
    """Minify a script.

    BASIC strips comments (keeping ``/*!`` ones) and collapses whitespace
    runs, keeping line breaks. AGGRESSIVE and EXTREME remove every
    insignificant whitespace character and insert ``;`` where a removed line
    break ended a statement.

    Literals are copied byte for byte. If anything goes wrong the script is
    returned unchanged and a warning is logged.

    Args:
        js: Script source.
        level: Compression level. NONE and AUTO return *js* unchanged.
        keyword_spacing: Below EXTREME, keep one space after an inserted
            ``;`` when a statement keyword follows it.

    Returns:
        The minified script.
    """
    level = CompressionLevel.clamp(level)
    if level < CompressionLevel.BASIC:
        return js

    try:
        return compact(strip_comments(tokenize(js), level), level, keyword_spacing)
    except Exception:
        logger.warning("JS minification failed, keeping the original script", exc_info=True)
        return js
