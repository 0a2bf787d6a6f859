"""Parser for benchpress templates.

Builds the node tree from the lexer's token stream. Blocks nest through an
explicit stack of open frames rather than recursion, so deeply nested
templates cannot exhaust the interpreter stack and every close marker is
checked against exactly the frame it closes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from benchpress._types import Token, TokenType
from benchpress.environment.exceptions import ErrorCode
from benchpress.nodes import Conditional, Iteration, Node, Output, Partial, Root, Text
from benchpress.parser.errors import ParseError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchpress.nodes import Expr


@dataclass(slots=True)
class _Frame:
    """An open ``if`` or ``each`` block awaiting its close marker."""

    opener: Token
    test: Expr
    body: list[Node] = field(default_factory=list)
    # Completed (test, body) pairs for else-if branches, in order
    branches: list[tuple[Expr, list[Node]]] = field(default_factory=list)
    else_body: list[Node] | None = None
    # Active branch bodies: body, then each else-if body, then the else body
    current: list[Node] = field(default_factory=list)
    pending_test: Expr | None = None

    @property
    def is_each(self) -> bool:
        return self.opener.type is TokenType.BLOCK_EACH

    @property
    def kind(self) -> str:
        return "each" if self.is_each else "if"


class Parser:
    """Recursive-free block parser.

    Args:
        tokens: Token list from the lexer, ending with EOF
        name: Template name for error messages
        source: Template source for error snippets
        strict: Unknown ``{{{ name }}}`` directives are errors; when False
            they are kept as literal text

    Example:
        >>> from benchpress.lexer import tokenize
        >>> Parser(tokenize("{{{ if a }}}x{{{ end }}}")).parse()
        Root(...)

    """

    __slots__ = ("_name", "_source", "_stack", "_strict", "_tokens")

    def __init__(
        self,
        tokens: Sequence[Token],
        *,
        name: str | None = None,
        source: str | None = None,
        strict: bool = True,
    ):
        self._tokens = tokens
        self._name = name
        self._source = source
        self._strict = strict
        self._stack: list[_Frame] = []

    def _error(
        self,
        message: str,
        token: Token,
        code: ErrorCode,
        suggestion: str | None = None,
    ) -> ParseError:
        return ParseError(
            message,
            token,
            name=self._name,
            source=self._source,
            suggestion=suggestion,
            code=code,
        )

    def parse(self) -> Root:
        """Parse the token stream into a Root node."""
        root: list[Node] = []
        stack = self._stack
        stack.clear()

        for token in self._tokens:
            target = stack[-1].current if stack else root
            ttype = token.type

            if ttype is TokenType.DATA:
                _append_text(target, token)

            elif ttype is TokenType.VARIABLE or ttype is TokenType.HELPER_CALL:
                target.append(
                    Output(token.lineno, token.col_offset, token.expr, escape=not token.raw)
                )

            elif ttype is TokenType.BLOCK_IF or ttype is TokenType.BLOCK_EACH:
                frame = _Frame(opener=token, test=token.expr)
                frame.current = frame.body
                stack.append(frame)

            elif ttype is TokenType.BLOCK_ELSE_IF:
                self._else_if(token)

            elif ttype is TokenType.BLOCK_ELSE:
                self._else(token)

            elif ttype is TokenType.BLOCK_END:
                if not stack:
                    raise self._error(
                        "unexpected end marker with no open block",
                        token,
                        ErrorCode.UNEXPECTED_TOKEN,
                    )
                frame = stack.pop()
                if token.target == "if" and frame.is_each:
                    raise self._error(
                        "mismatched block: ENDIF closes an 'each' block",
                        token,
                        ErrorCode.MISMATCHED_BLOCK,
                        suggestion="Close iteration blocks with <!-- END --> or {{{ end }}}",
                    )
                node = self._close(frame)
                (stack[-1].current if stack else root).append(node)

            elif ttype is TokenType.IMPORT:
                target.append(
                    Partial(token.lineno, token.col_offset, token.target, token.context)
                )

            elif ttype is TokenType.DIRECTIVE:
                if self._strict:
                    raise self._error(
                        f"unknown directive {token.target or token.value!r}",
                        token,
                        ErrorCode.UNKNOWN_DIRECTIVE,
                        suggestion="Known directives: if, else, else if, each, end, import",
                    )
                _append_text(target, token)

            elif ttype is TokenType.EOF:
                break

        if stack:
            frame = stack[0]
            raise self._error(
                f"unclosed block: '{frame.kind}' opened here was never closed",
                frame.opener,
                ErrorCode.UNCLOSED_BLOCK,
                suggestion="Add {{{ end }}} to close the block",
            )

        return Root(1, 0, tuple(root))

    def _else_if(self, token: Token) -> None:
        if not self._stack:
            raise self._error(
                "unexpected 'else if' with no open block", token, ErrorCode.UNEXPECTED_TOKEN
            )
        frame = self._stack[-1]
        if frame.is_each:
            raise self._error(
                "'else if' is not allowed inside an 'each' block",
                token,
                ErrorCode.UNEXPECTED_TOKEN,
            )
        if frame.else_body is not None:
            raise self._error(
                "'else if' after 'else'", token, ErrorCode.UNEXPECTED_TOKEN
            )
        self._finish_branch(frame)
        frame.pending_test = token.expr
        frame.current = []

    def _else(self, token: Token) -> None:
        if not self._stack:
            raise self._error(
                "unexpected 'else' with no open block", token, ErrorCode.UNEXPECTED_TOKEN
            )
        frame = self._stack[-1]
        if frame.else_body is not None:
            raise self._error(
                f"duplicate 'else' in '{frame.kind}' block", token, ErrorCode.UNEXPECTED_TOKEN
            )
        self._finish_branch(frame)
        frame.else_body = []
        frame.current = frame.else_body

    @staticmethod
    def _finish_branch(frame: _Frame) -> None:
        if frame.pending_test is not None:
            frame.branches.append((frame.pending_test, frame.current))
            frame.pending_test = None

    def _close(self, frame: _Frame) -> Node:
        self._finish_branch(frame)
        opener = frame.opener
        else_body = tuple(frame.else_body or ())
        if frame.is_each:
            return Iteration(
                opener.lineno,
                opener.col_offset,
                frame.test,
                tuple(frame.body),
                empty=else_body,
                alias=opener.alias,
                index_alias=opener.index_alias,
            )
        return Conditional(
            opener.lineno,
            opener.col_offset,
            frame.test,
            tuple(frame.body),
            elif_=tuple((test, tuple(body)) for test, body in frame.branches),
            else_=else_body,
        )


def _append_text(target: list[Node], token: Token) -> None:
    """Append literal text, merging with a preceding Text node."""
    if target and isinstance(target[-1], Text):
        prev = target[-1]
        target[-1] = Text(prev.lineno, prev.col_offset, prev.value + token.value)
    else:
        target.append(Text(token.lineno, token.col_offset, token.value))
