"""Expression grammar for benchpress directives.

Expressions are small enough to parse with a hand-written recursive
descent over the marker text. Alternatives are tried in this order:

    expression := "!" expression
                | "function." identifier ("," expression)*     # legacy helper
                | identifier "(" [expression ("," expression)*] ")"
                | string
                | path

    path := "@root" ("." identifier)*
          | ("./" | "../")* identifier ("." identifier)*

Identifiers are runs of ``[A-Za-z0-9_\\-:@]``. A trailing ``--`` directly
before ``>`` is not part of an identifier so that ``<!-- IF a-->`` parses.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import NoReturn

from benchpress.nodes import Expr, HelperCall, Literal, Not, Variable

_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_\-:@]+")
_STRING_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

Locator = Callable[[int], tuple[int, int]]


class ExpressionError(Exception):
    """Expression text does not match the grammar.

    Attributes:
        message: What went wrong
        offset: Offset of the failure in the enclosing template source
    """

    def __init__(self, message: str, offset: int):
        self.message = message
        self.offset = offset
        super().__init__(f"{message} (offset {offset})")


class ExpressionParser:
    """Parse one expression from directive text.

    Args:
        text: The expression text (marker content without delimiters)
        offset: Offset of ``text[0]`` in the template source
        locate: Maps a source offset to (lineno, col_offset)
        implicit_root: Legacy ``<!-- IF function.x -->`` passes ``@root``
            as the first helper argument

    """

    __slots__ = ("_implicit_root", "_locate", "_nesting", "_offset", "_pos", "_text")

    def __init__(
        self,
        text: str,
        offset: int = 0,
        locate: Locator | None = None,
        *,
        implicit_root: bool = False,
    ):
        self._text = text
        self._offset = offset
        self._locate = locate or (lambda off: (1, off))
        self._implicit_root = implicit_root
        self._pos = 0
        self._nesting = 0

    def parse(self) -> Expr:
        """Parse the whole text as a single expression."""
        self._skip_ws()
        expr = self._expression()
        self._skip_ws()
        if self._pos != len(self._text):
            self._fail(f"unexpected {self._text[self._pos:]!r} after expression")
        return expr

    # ------------------------------------------------------------------
    # Scanning primitives
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> NoReturn:
        raise ExpressionError(message, self._offset + self._pos)

    def _where(self, pos: int) -> tuple[int, int]:
        return self._locate(self._offset + pos)

    def _skip_ws(self) -> None:
        text = self._text
        while self._pos < len(text) and text[self._pos].isspace():
            self._pos += 1

    def _peek(self, literal: str) -> bool:
        return self._text.startswith(literal, self._pos)

    def _identifier(self) -> str:
        match = _IDENTIFIER_RE.match(self._text, self._pos)
        if match is None:
            self._fail("expected identifier")
        ident = match.group()
        end = match.end()
        if ident.endswith("--") and self._text.startswith(">", end):
            ident = ident[:-2]
            end -= 2
            if not ident:
                self._fail("expected identifier")
        self._pos = end
        return ident

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def _expression(self) -> Expr:
        start = self._pos
        lineno, col = self._where(start)

        if self._peek("!"):
            self._pos += 1
            self._skip_ws()
            return Not(lineno, col, self._expression())

        if self._peek("function."):
            return self._legacy_helper(lineno, col)

        match = _IDENTIFIER_RE.match(self._text, self._pos)
        if match is not None and self._text.startswith("(", match.end()):
            return self._helper(lineno, col)

        if self._peek('"'):
            return self._string(lineno, col)

        return self._path(lineno, col)

    def _arguments(self, closer: str | None) -> list[Expr]:
        """Parse comma separated arguments up to ``closer`` or end of text."""
        args: list[Expr] = []
        self._nesting += 1
        try:
            self._skip_ws()
            if closer is not None and self._peek(closer):
                return args
            while True:
                self._skip_ws()
                args.append(self._expression())
                self._skip_ws()
                if not self._peek(","):
                    return args
                self._pos += 1
        finally:
            self._nesting -= 1

    def _helper(self, lineno: int, col: int) -> HelperCall:
        name = self._identifier()
        self._pos += 1  # "("
        args = self._arguments(")")
        self._skip_ws()
        if not self._peek(")"):
            self._fail(f"expected ')' to close call to {name!r}")
        self._pos += 1
        return HelperCall(lineno, col, name, tuple(args))

    def _legacy_helper(self, lineno: int, col: int) -> HelperCall:
        top_level = self._nesting == 0
        self._pos += len("function.")
        name = self._identifier()
        save = self._pos
        self._skip_ws()
        if self._peek(","):
            self._pos += 1
            args = self._arguments(None)
        else:
            self._pos = save
            # No arguments: the current element is passed implicitly
            args = [Variable(*self._where(self._pos), ("@value",))]
        if top_level and self._implicit_root:
            args.insert(0, Variable(lineno, col, (), absolute=True))
        return HelperCall(lineno, col, name, tuple(args))

    def _string(self, lineno: int, col: int) -> Literal:
        text = self._text
        pos = self._pos + 1
        chars: list[str] = []
        while pos < len(text):
            ch = text[pos]
            if ch == "\\":
                if pos + 1 >= len(text):
                    break
                nxt = text[pos + 1]
                chars.append(_STRING_ESCAPES.get(nxt, nxt))
                pos += 2
                continue
            if ch == '"':
                self._pos = pos + 1
                return Literal(lineno, col, "".join(chars))
            chars.append(ch)
            pos += 1
        self._fail("unterminated string literal")

    def _path(self, lineno: int, col: int) -> Variable:
        if self._peek("@root") and not _continues_identifier(self._text, self._pos + 5):
            self._pos += 5
            path = self._dotted_tail()
            return Variable(lineno, col, tuple(path), absolute=True)

        depth: int | None = None
        while True:
            if self._peek("./"):
                self._pos += 2
                depth = depth or 0
            elif self._peek("../"):
                self._pos += 3
                depth = (depth or 0) + 1
            else:
                break

        path = [self._identifier()]
        path.extend(self._dotted_tail())
        return Variable(lineno, col, tuple(path), depth=depth)

    def _dotted_tail(self) -> list[str]:
        parts: list[str] = []
        while self._peek(".") and _IDENTIFIER_RE.match(self._text, self._pos + 1):
            self._pos += 1
            parts.append(self._identifier())
        return parts


def _continues_identifier(text: str, pos: int) -> bool:
    return pos < len(text) and _IDENTIFIER_RE.match(text, pos) is not None


def parse_expression(
    text: str,
    offset: int = 0,
    locate: Locator | None = None,
    *,
    implicit_root: bool = False,
) -> Expr:
    """Parse ``text`` as one expression or raise ExpressionError."""
    return ExpressionParser(text, offset, locate, implicit_root=implicit_root).parse()
