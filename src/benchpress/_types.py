"""Token types produced by the benchpress lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchpress.nodes import Expr


class TokenType(Enum):
    """Kinds of token in a scanned template.

    Block markers exist in two spellings (``{{{ if x }}}`` and the legacy
    ``<!-- IF x -->``); both produce the same token type.
    """

    DATA = "data"
    VARIABLE = "variable"
    HELPER_CALL = "helper_call"
    BLOCK_IF = "if"
    BLOCK_ELSE_IF = "else_if"
    BLOCK_ELSE = "else"
    BLOCK_EACH = "each"
    BLOCK_END = "end"
    IMPORT = "import"
    DIRECTIVE = "directive"
    EOF = "eof"


# Token types that open, continue, or close a block. Used for trim_blocks.
BLOCK_TOKENS = frozenset(
    {
        TokenType.BLOCK_IF,
        TokenType.BLOCK_ELSE_IF,
        TokenType.BLOCK_ELSE,
        TokenType.BLOCK_EACH,
        TokenType.BLOCK_END,
        TokenType.IMPORT,
    }
)


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexical unit.

    Attributes:
        type: Token kind
        value: Literal text for DATA and DIRECTIVE tokens, the inner marker
            text for everything else
        offset: 0-based offset of the token start in the source
        lineno: 1-based line number
        col_offset: 0-based column
        expr: Parsed expression for interpolations and if/each markers
        raw: True for unescaped ``{{ }}`` interpolations
        alias: Item alias for ``each ... as item``
        index_alias: Index alias for ``each ... as item, i``
        target: Partial name for IMPORT, or ``"if"`` on an ENDIF closer
        context: Narrowing path for ``import ... with path``
    """

    type: TokenType
    value: str
    offset: int
    lineno: int
    col_offset: int
    expr: Expr | None = None
    raw: bool = False
    alias: str | None = None
    index_alias: str | None = None
    target: str | None = None
    context: Expr | None = None

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.lineno}:{self.col_offset})"
