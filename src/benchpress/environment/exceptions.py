"""Exceptions for the benchpress template system.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError       # Template not found by loader
├── TemplateSyntaxError         # Lex-time failure (unterminated marker)
│   └── ParseError              # Structural failure (see benchpress.parser.errors)
├── CompileError                # Cyclic partial import, helper arity
└── TemplateRuntimeError        # Render-time failure
    ├── HelperNotFoundError     # Unresolved helper name
    └── PartialNotFoundError    # Referenced template not loadable

Missing variables are deliberately absent from this hierarchy: a path that
resolves nowhere renders as an empty string.

Error Messages:
Compile-time errors carry the source offset and show the offending line:

    ```
    Syntax Error: unterminated block marker '{{{'
      --> page.tpl:3:4
       |
      3 | <p>{{{ if user </p>
       |     ^
    ```

"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(Enum):
    """Searchable error codes for benchpress template errors.

    Format: BP-{CATEGORY}-{NUMBER}
    Categories: LEX (lexer), PAR (parser), CMP (compiler), RUN (runtime),
    TPL (template loading)
    """

    # Lexer errors (BP-LEX-xxx)
    UNCLOSED_BLOCK_MARKER = "BP-LEX-001"
    UNCLOSED_INTERPOLATION = "BP-LEX-002"
    UNCLOSED_LEGACY_MARKER = "BP-LEX-003"

    # Parser errors (BP-PAR-xxx)
    UNEXPECTED_TOKEN = "BP-PAR-001"
    UNCLOSED_BLOCK = "BP-PAR-002"
    MISMATCHED_BLOCK = "BP-PAR-003"
    UNKNOWN_DIRECTIVE = "BP-PAR-004"
    INVALID_EXPRESSION = "BP-PAR-005"

    # Compiler errors (BP-CMP-xxx)
    CYCLIC_IMPORT = "BP-CMP-001"
    HELPER_ARITY = "BP-CMP-002"

    # Runtime errors (BP-RUN-xxx)
    HELPER_NOT_FOUND = "BP-RUN-001"
    PARTIAL_NOT_FOUND = "BP-RUN-002"
    HELPER_ERROR = "BP-RUN-003"
    INCLUDE_DEPTH = "BP-RUN-004"
    RUNTIME_ERROR = "BP-RUN-005"

    # Template loading errors (BP-TPL-xxx)
    TEMPLATE_NOT_FOUND = "BP-TPL-001"

    @property
    def category(self) -> str:
        """Error category (e.g., 'runtime', 'lexer', 'parser', 'template')."""
        prefix = self.value.split("-")[1]
        return {
            "LEX": "lexer",
            "PAR": "parser",
            "CMP": "compiler",
            "RUN": "runtime",
            "TPL": "template",
        }.get(prefix, "unknown")


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------


def offset_to_position(source: str, offset: int) -> tuple[int, int]:
    """Convert a 0-based source offset to (1-based line, 0-based column)."""
    offset = max(0, min(offset, len(source)))
    lineno = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return lineno, offset - line_start


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Template source context around an error line.

    Attributes:
        lines: Tuple of (line_number, line_content) pairs around the error.
        error_line: The 1-based line number where the error occurred.
        column: Optional column offset for caret pointer.
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None

    def format(self) -> str:
        """Format snippet in Rust-inspired diagnostic style."""
        parts: list[str] = ["   |"]
        for lineno, content in self.lines:
            marker = ">" if lineno == self.error_line else " "
            parts.append(f"{marker}{lineno:>3} | {content}")
            if lineno == self.error_line and self.column is not None:
                parts.append(f"     | {' ' * self.column}^")
        parts.append("   |")
        return "\n".join(parts)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 2,
    column: int | None = None,
) -> SourceSnippet:
    """Build a SourceSnippet from template source.

    Args:
        source: Full template source text.
        error_line: 1-based line number of the error.
        context_lines: Number of lines to show before/after the error line.
        column: Optional column offset for caret pointer.

    Returns:
        SourceSnippet with surrounding context lines.
    """
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line, column=column)


class TemplateError(Exception):
    """Base exception for all benchpress template errors.

    All template-related exceptions inherit from this class, enabling
    broad exception handling:

        >>> try:
        ...     await env.render("page", ctx)
        ... except TemplateError as e:
        ...     log.error("Template error: %s", e.format_compact())

    Attributes:
        code: Optional ErrorCode for searchable error identification.
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Format error as a one-screen summary prefixed by its code."""
        header = str(self).strip()
        if self.code and self.code.value not in header:
            header = f"{self.code.value}: {header}"
        return header


class TemplateNotFoundError(TemplateError):
    """Template not found by any configured loader.

    Example:
            >>> env.get_template("nonexistent.tpl")
        TemplateNotFoundError: Template 'nonexistent.tpl' not found in: templates/

    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateSyntaxError(TemplateError):
    """Lex-time syntax error in template source.

    Raised by the lexer when a directive marker begins but never closes.
    Carries the 0-based ``offset`` plus the derived line and column; when
    ``source`` is known the message includes the offending line.
    """

    code: ErrorCode | None = ErrorCode.UNCLOSED_BLOCK_MARKER
    _label = "Syntax Error"

    def __init__(
        self,
        message: str,
        offset: int | None = None,
        *,
        lineno: int | None = None,
        col_offset: int | None = None,
        name: str | None = None,
        source: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.offset = offset
        if source is not None and offset is not None and lineno is None:
            lineno, col_offset = offset_to_position(source, offset)
        self.lineno = lineno
        self.col_offset = col_offset
        self.name = name
        self.source = source
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        location = self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
            if self.col_offset is not None:
                location += f":{self.col_offset}"

        header = f"{self._label}: {self.message}\n  --> {location}"

        if self.source and self.lineno:
            snippet = build_source_snippet(
                self.source, self.lineno, context_lines=0, column=self.col_offset
            )
            return f"{header}\n{snippet.format()}"

        return header


class CompileError(TemplateError):
    """Code-generation failure.

    Raised for a cyclic partial import (``chain`` holds the offending
    template names, first and last equal) or a helper called with an
    argument count its registered signature cannot accept.

    Example:
            >>> await env.compile("a")
        CompileError: Cyclic partial import: a -> b -> a
    """

    code: ErrorCode | None = ErrorCode.CYCLIC_IMPORT

    def __init__(
        self,
        message: str,
        *,
        chain: Sequence[str] = (),
        template_name: str | None = None,
        lineno: int | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.chain = tuple(chain)
        self.template_name = template_name
        self.lineno = lineno
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    @classmethod
    def cycle(cls, chain: Sequence[str]) -> CompileError:
        return cls(
            "Cyclic partial import: " + " -> ".join(chain),
            chain=chain,
            template_name=chain[0] if chain else None,
        )

    def _format_message(self) -> str:
        msg = f"Compile Error: {self.message}"
        if self.template_name:
            loc = self.template_name
            if self.lineno:
                loc += f":{self.lineno}"
            msg += f"\n  --> {loc}"
        return msg


class TemplateRuntimeError(TemplateError):
    """Render-time error with template location.

    Output Format:
            ```
            Runtime Error: helper 'formatDate' raised ValueError: bad date
              Location: post.tpl:15
              Template stack:
                • page.tpl:4
            ```

    Attributes:
        message: Error description
        template_name: Name of the template being rendered
        lineno: Line number in template source
        template_stack: (template_name, line) pairs of the include chain
        suggestion: Actionable fix suggestion
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        lineno: int | None = None,
        suggestion: str | None = None,
        template_stack: list[tuple[str, int]] | None = None,
    ):
        self.message = message
        self.template_name = template_name
        self.lineno = lineno
        self.suggestion = suggestion
        self.template_stack = template_stack or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]

        if self.template_name or self.lineno:
            loc = self.template_name or "<template>"
            if self.lineno:
                loc += f":{self.lineno}"
            parts.append(f"  Location: {loc}")

        if self.template_stack:
            parts.append("  Template stack:")
            parts.extend(f"    • {name}:{line}" for name, line in self.template_stack)

        if self.suggestion:
            parts.append(f"  Suggestion: {self.suggestion}")

        return "\n".join(parts)


class HelperNotFoundError(TemplateRuntimeError):
    """A helper referenced by the template is not in the helper mapping.

    Helper output is assumed to be required, so this is fatal to the
    render instead of silently producing nothing.
    """

    code: ErrorCode | None = ErrorCode.HELPER_NOT_FOUND

    def __init__(self, helper_name: str, available: Sequence[str] = (), **kwargs):
        self.helper_name = helper_name
        suggestion = None
        if available:
            from difflib import get_close_matches

            matches = get_close_matches(helper_name, list(available), n=1, cutoff=0.6)
            if matches:
                suggestion = f"Did you mean '{matches[0]}'?"
        kwargs.setdefault("suggestion", suggestion)
        super().__init__(f"Helper '{helper_name}' is not registered", **kwargs)


class PartialNotFoundError(TemplateRuntimeError):
    """A partial referenced by ``import`` is neither cached nor loadable."""

    code: ErrorCode | None = ErrorCode.PARTIAL_NOT_FOUND

    def __init__(self, partial_name: str, **kwargs):
        self.partial_name = partial_name
        super().__init__(f"Partial '{partial_name}' not found", **kwargs)
