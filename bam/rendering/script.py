"""Converter for the embedded page-scripting format.

Script pages describe markup with a terse, CoffeeKup-like syntax::

    section ->
      div 'hero', ->
        h1 'hello world'
        jpg2('goodmorning')
      li -> a href: '/about', 'About'

Each line is tokenized and, when it forms an element statement, rewritten to
HTML. Block elements opened with ``->`` are tracked on a stack; whatever is
still open at the end of the input is closed in LIFO order. Lines that are not
element statements pass through unchanged except for helper calls, which are
replaced by their output. The format is best-effort: malformed input is left
as-is rather than rejected.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bam.rendering.markdown import render_markdown

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

Helper = Callable[[str], str]

BLOCK_TAGS: frozenset[str] = frozenset({"div", "section", "center", "li"})
VOID_TAGS: frozenset[str] = frozenset({"img"})
ELEMENT_TAGS: frozenset[str] = (
    BLOCK_TAGS | VOID_TAGS | frozenset({"h1", "h2", "h3", "p", "span", "a", "strong", "em"})
)

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>[ \t]+)
    | (?P<arrow>->)
    | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<ident>[A-Za-z_][A-Za-z0-9_-]*)
    | (?P<punct>[:,()])
    | (?P<text>.)
    """,
    re.VERBOSE,
)
_ESCAPE_RE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t"}
_BLOCK_TAG_RE = re.compile(
    r"<(/?)(" + "|".join(sorted(BLOCK_TAGS)) + r")\b[^>]*?(/?)>", re.IGNORECASE
)


@dataclass(frozen=True)
class Token:
    """A lexical token of one script line, with its span in that line."""

    kind: str
    value: str
    start: int
    end: int

    def is_punct(self, char: str) -> bool:
        return self.kind == "punct" and self.value == char


def tokenize(line: str) -> list[Token]:
    """Split one line into tokens, dropping whitespace."""
    tokens: list[Token] = []
    for match in _TOKEN_RE.finditer(line):
        kind = match.lastgroup
        if kind is None or kind == "ws":
            continue
        tokens.append(Token(kind, match.group(), match.start(), match.end()))
    return tokens


def _decode_string(literal: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), literal[1:-1])


def _format_attrs(attrs: list[tuple[str, str]]) -> str:
    return "".join(f' {name}="{html.escape(value, quote=True)}"' for name, value in attrs)


def escape_html(text: str) -> str:
    """Entity-escape angle brackets so markup displays literally."""
    return text.replace("<", "&lt;").replace(">", "&gt;")


def jpg2(name: str) -> str:
    """Embed an image from the ``<name>.jpg.to`` image service."""
    src = html.escape(f"http://{name}.jpg.to", quote=True)
    return f'<img src="{src}" style="max-height: 90%;max-width:90%" />'


class ScriptRenderer:
    """Renders script-format page sources to HTML fragments.

    Args:
        base_dir: Directory ``get('path')`` reads files from. Without one,
            ``get`` always yields an empty string.
        helpers: Extra or overriding helper functions, keyed by call name.
    """

    def __init__(
        self,
        base_dir: Path | None = None,
        helpers: Mapping[str, Helper] | None = None,
    ) -> None:
        self._base_dir = base_dir
        self._helpers: dict[str, Helper] = {
            "escape": escape_html,
            "jpg2": jpg2,
            "markdown": render_markdown,
            "get": self._read_file,
        }
        if helpers:
            self._helpers.update(helpers)

    def render(self, source: str) -> str:
        """Convert a whole script document, auto-closing open blocks."""
        stack: list[str] = []
        out: list[str] = []
        for raw_line in source.splitlines(keepends=True):
            line = raw_line.rstrip("\r\n")
            newline = raw_line[len(line) :]
            content = line.lstrip()
            indent = line[: len(line) - len(content)]
            out.append(indent + self._convert(content, stack) + newline)
        out.extend(f"</{tag}>" for tag in reversed(stack))
        return "".join(out)

    def _convert(self, text: str, stack: list[str]) -> str:
        if not text:
            return text
        tokens = tokenize(text)
        element = self._element(text, tokens, stack)
        if element is not None:
            return element
        return self._balance(self._substitute_helpers(text, tokens), stack)

    def _element(self, text: str, tokens: list[Token], stack: list[str]) -> str | None:
        """Render an element statement, or return None if ``text`` is not one."""
        if not tokens or tokens[0].kind != "ident" or tokens[0].value not in ELEMENT_TAGS:
            return None
        tag = tokens[0].value
        attrs: list[tuple[str, str]] = []
        texts: list[str] = []
        pos = 1
        while pos < len(tokens) and tokens[pos].kind != "arrow":
            tok = tokens[pos]
            if tok.is_punct(","):
                pos += 1
                continue
            if tok.kind == "ident" and pos + 1 < len(tokens) and tokens[pos + 1].is_punct(":"):
                parsed = self._value(tokens, pos + 2)
                if parsed is None:
                    return None
                attrs.append((tok.value, parsed[0]))
                pos = parsed[1]
                continue
            parsed = self._value(tokens, pos)
            if parsed is None:
                return None
            texts.append(parsed[0])
            pos = parsed[1]

        if pos < len(tokens):
            if tag not in BLOCK_TAGS:
                return None
            if texts:
                attrs.insert(0, ("class", " ".join(texts)))
            stack.append(tag)
            rest = text[tokens[pos].end :].strip()
            nested = self._convert(rest, stack) if rest else ""
            return f"<{tag}{_format_attrs(attrs)}>{nested}"

        if not attrs and not texts:
            return None
        if tag in VOID_TAGS:
            if texts:
                attrs.insert(0, ("src", texts[0]))
            return f"<{tag}{_format_attrs(attrs)} />"
        return f"<{tag}{_format_attrs(attrs)}>{''.join(texts)}</{tag}>"

    def _value(self, tokens: list[Token], pos: int) -> tuple[str, int] | None:
        """Parse a string literal or helper call starting at ``pos``."""
        if pos >= len(tokens):
            return None
        tok = tokens[pos]
        if tok.kind == "string":
            return _decode_string(tok.value), pos + 1
        if self._is_helper_call(tokens, pos):
            result = self._call_helper(tok.value, _decode_string(tokens[pos + 2].value))
            if result is None:
                return None
            return result, pos + 4
        return None

    def _is_helper_call(self, tokens: list[Token], pos: int) -> bool:
        return (
            pos + 3 < len(tokens)
            and tokens[pos].kind == "ident"
            and tokens[pos].value in self._helpers
            and tokens[pos + 1].is_punct("(")
            and tokens[pos + 2].kind == "string"
            and tokens[pos + 3].is_punct(")")
        )

    def _call_helper(self, name: str, argument: str) -> str | None:
        try:
            return self._helpers[name](argument)
        except Exception as exc:
            logger.warning("Script helper %s(%r) failed: %s", name, argument, exc)
            return None

    def _substitute_helpers(self, text: str, tokens: list[Token]) -> str:
        """Replace every well-formed helper call in ``text`` with its output."""
        pieces: list[str] = []
        last = 0
        pos = 0
        while pos < len(tokens):
            if self._is_helper_call(tokens, pos):
                result = self._call_helper(tokens[pos].value, _decode_string(tokens[pos + 2].value))
                if result is not None:
                    pieces.append(text[last : tokens[pos].start])
                    pieces.append(result)
                    last = tokens[pos + 3].end
                pos += 4
                continue
            pos += 1
        pieces.append(text[last:])
        return "".join(pieces)

    @staticmethod
    def _balance(text: str, stack: list[str]) -> str:
        """Track literal block tags in passthrough text against the open stack.

        Literal openers are pushed. A literal closer pops its element, first
        closing anything opened after it. Stray closers pass through.
        """
        pieces: list[str] = []
        last = 0
        for match in _BLOCK_TAG_RE.finditer(text):
            closing, tag, self_closing = match.group(1), match.group(2).lower(), match.group(3)
            if not closing:
                if not self_closing:
                    stack.append(tag)
                continue
            if tag not in stack:
                continue
            idx = len(stack) - 1 - stack[::-1].index(tag)
            pieces.append(text[last : match.start()])
            pieces.extend(f"</{inner}>" for inner in reversed(stack[idx + 1 :]))
            pieces.append(match.group(0))
            del stack[idx:]
            last = match.end()
        pieces.append(text[last:])
        return "".join(pieces)

    def _read_file(self, rel_path: str) -> str:
        if self._base_dir is None:
            logger.warning("get(%r) has no base directory to read from", rel_path)
            return ""
        base = self._base_dir.resolve()
        full_path = (base / rel_path).resolve()
        if not full_path.is_relative_to(base):
            logger.warning("get(%r) escapes the project directory", rel_path)
            return ""
        if not full_path.is_file():
            logger.warning("get(%r): file not found", rel_path)
            return ""
        return full_path.read_text(encoding="utf-8")


def render_script(source: str, base_dir: Path | None = None) -> str:
    """Convert a script-format document to an HTML fragment."""
    return ScriptRenderer(base_dir=base_dir).render(source)
