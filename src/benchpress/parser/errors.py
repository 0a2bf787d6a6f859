"""Parser error handling for benchpress.

Provides ParseError class with rich source context and suggestions.
"""

from __future__ import annotations

from benchpress._types import Token
from benchpress.environment.exceptions import ErrorCode, TemplateSyntaxError


class ParseError(TemplateSyntaxError):
    """Structural template error with rich source context.

    Raised for mismatched or unclosed blocks, stray ``else``/``end``
    markers, unknown directive names and invalid expressions. Displays
    errors with source code snippets and visual pointers, matching the
    format used by the lexer for consistency.
    """

    code: ErrorCode | None = ErrorCode.UNEXPECTED_TOKEN
    _label = "Parse Error"

    def __init__(
        self,
        message: str,
        token: Token | None = None,
        *,
        offset: int | None = None,
        source: str | None = None,
        name: str | None = None,
        suggestion: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.token = token
        self.suggestion = suggestion
        if token is not None:
            offset = token.offset
        super().__init__(
            message,
            offset,
            lineno=token.lineno if token is not None else None,
            col_offset=token.col_offset if token is not None else None,
            name=name,
            source=source,
            code=code,
        )

    def _format_message(self) -> str:
        msg = super()._format_message()
        if self.suggestion:
            msg += f"\n\nSuggestion: {self.suggestion}"
        return msg
