"""Lexer for benchpress templates.

Scans template source into a flat token stream. The lexer is a single
left-to-right pass: a compiled regex finds the next possible opener, the
matching scanner either produces a token or declines (the opener is then
ordinary text), and text between tokens is merged into DATA tokens.

Markup:
    {expr}                      escaped interpolation / helper call
    {{expr}}                    raw interpolation / helper call
    {{{ if expr }}}             conditional            <!-- IF expr -->
    {{{ else if expr }}}        else-if branch
    {{{ else }}}                else / empty branch    <!-- ELSE -->
    {{{ each expr [as a[, i]] }}}  iteration           <!-- BEGIN expr -->
    {{{ end }}}                 block close            <!-- END -->, <!-- ENDIF -->
    {{{ import name [with p] }}}  partial inclusion    <!-- IMPORT name -->
    \\{  \\{{  \\{{{  \\<!--       literal opener (backslash removed)

An interpolation whose body is not a valid expression is literal text,
so CSS and script braces pass through untouched. A marker that begins
but never closes is a TemplateSyntaxError; no partial token stream is
returned.

Example:
    >>> [t.type.name for t in tokenize("Hi {name}!")]
    ['DATA', 'VARIABLE', 'DATA', 'EOF']

"""

from __future__ import annotations

import re
from bisect import bisect_right

from benchpress._types import BLOCK_TOKENS, Token, TokenType
from benchpress.environment.exceptions import ErrorCode, TemplateSyntaxError
from benchpress.nodes import Expr, HelperCall
from benchpress.parser.errors import ParseError
from benchpress.parser.expressions import ExpressionError, parse_expression

# Escaped openers first so "\{{{" is not read as "\" + "{{{"
_OPENER_RE = re.compile(r"\\(?:\{\{\{|\{\{|\{|<!--)|\{|<!--")
_KEYWORD_RE = re.compile(r"\s*([A-Za-z]+)")
_LEGACY_RE = re.compile(r"<!--\s*(IF|BEGIN|ELSE|ENDIF|END|IMPORT)\b")
_EXPR_START_RE = re.compile(r"[A-Za-z0-9_\-:@.!\"]")
_EACH_ALIAS_RE = re.compile(
    r"\s+as\s+([A-Za-z_][\w-]*)\s*(?:,\s*([A-Za-z_][\w-]*))?\s*$"
)
_IMPORT_RE = re.compile(
    r'\s*(?:"((?:[^"\\]|\\.)*)"|([^\s"]+))(?:\s+with\s+(\S.*?))?\s*$', re.DOTALL
)
_ELSE_IF_RE = re.compile(r"\s*if\s")


class Lexer:
    """Tokenize one template source.

    Args:
        source: Template source text
        name: Template name for error messages
        trim_blocks: Drop one newline directly after each block marker

    """

    __slots__ = ("_line_starts", "_name", "_source", "_tokens", "_trim_blocks")

    def __init__(self, source: str, *, name: str | None = None, trim_blocks: bool = False):
        self._source = source
        self._name = name
        self._trim_blocks = trim_blocks
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", source)]
        self._tokens: list[Token] = []

    def locate(self, offset: int) -> tuple[int, int]:
        """Map a source offset to (1-based line, 0-based column)."""
        index = bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index]

    def tokenize(self) -> list[Token]:
        """Scan the whole source and return the token list ending in EOF."""
        source = self._source
        self._tokens = []
        pos = 0
        text_start = 0

        while True:
            match = _OPENER_RE.search(source, pos)
            if match is None:
                break
            start = match.start()
            opener = match.group()

            if opener[0] == "\\":
                # Drop the backslash; the opener itself joins the next text run
                self._emit_text(text_start, start)
                text_start = start + 1
                pos = match.end()
                continue

            if opener == "<!--":
                scanned = self._scan_legacy(start)
            elif source.startswith("{{{", start):
                scanned = self._scan_block(start)
            elif source.startswith("{{", start):
                scanned = self._scan_interpolation(start, 2)
            else:
                scanned = self._scan_interpolation(start, 1)

            if scanned is None:
                pos = start + 1
                continue

            token, end = scanned
            self._emit_text(text_start, start)
            self._tokens.append(token)
            if self._trim_blocks and token.type in BLOCK_TOKENS:
                if source.startswith("\r\n", end):
                    end += 2
                elif source.startswith("\n", end):
                    end += 1
            pos = text_start = end

        self._emit_text(text_start, len(source))
        lineno, col = self.locate(len(source))
        self._tokens.append(Token(TokenType.EOF, "", len(source), lineno, col))
        return self._tokens

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit_text(self, start: int, end: int) -> None:
        if start >= end:
            return
        text = self._source[start:end]
        tokens = self._tokens
        if tokens and tokens[-1].type is TokenType.DATA:
            prev = tokens[-1]
            tokens[-1] = Token(
                TokenType.DATA, prev.value + text, prev.offset, prev.lineno, prev.col_offset
            )
            return
        lineno, col = self.locate(start)
        tokens.append(Token(TokenType.DATA, text, start, lineno, col))

    def _syntax_error(self, message: str, offset: int, code: ErrorCode) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message, offset, name=self._name, source=self._source, code=code
        )

    def _parse_error(self, message: str, offset: int, code: ErrorCode) -> ParseError:
        return ParseError(
            message, offset=offset, name=self._name, source=self._source, code=code
        )

    def _expression(self, text: str, offset: int, *, implicit_root: bool = False) -> Expr:
        """Parse a block-marker expression; failures are parse errors."""
        if not text.strip():
            raise self._parse_error(
                "missing expression", offset, ErrorCode.INVALID_EXPRESSION
            )
        try:
            return parse_expression(text, offset, self.locate, implicit_root=implicit_root)
        except ExpressionError as e:
            raise self._parse_error(
                f"invalid expression {text.strip()!r}: {e.message}",
                e.offset,
                ErrorCode.INVALID_EXPRESSION,
            ) from None

    def _token(self, type_: TokenType, value: str, offset: int, **fields) -> Token:
        lineno, col = self.locate(offset)
        return Token(type_, value, offset, lineno, col, **fields)

    # ------------------------------------------------------------------
    # Scanners: return (token, end offset) or None when the opener is text
    # ------------------------------------------------------------------

    def _scan_interpolation(self, start: int, width: int) -> tuple[Token, int] | None:
        source = self._source
        body_start = start + width
        probe = body_start
        while probe < len(source) and source[probe] in " \t":
            probe += 1
        if probe >= len(source) or not _EXPR_START_RE.match(source, probe):
            return None

        closer = "}" * width
        close = source.find(closer, body_start)
        if close == -1:
            raise self._syntax_error(
                f"unterminated interpolation '{'{' * width}'",
                start,
                ErrorCode.UNCLOSED_INTERPOLATION,
            )

        body = source[body_start:close]
        try:
            expr = parse_expression(body, body_start, self.locate)
        except ExpressionError:
            return None

        type_ = TokenType.HELPER_CALL if isinstance(expr, HelperCall) else TokenType.VARIABLE
        token = self._token(type_, body.strip(), start, expr=expr, raw=width == 2)
        return token, close + width

    def _scan_block(self, start: int) -> tuple[Token, int]:
        source = self._source
        close = source.find("}}}", start + 3)
        if close == -1:
            raise self._syntax_error(
                "unterminated block marker '{{{'", start, ErrorCode.UNCLOSED_BLOCK_MARKER
            )
        inner_start = start + 3
        inner = source[inner_start:close]
        end = close + 3

        keyword_match = _KEYWORD_RE.match(inner)
        keyword = keyword_match.group(1) if keyword_match else ""
        rest_offset = inner_start + (keyword_match.end() if keyword_match else 0)
        rest = source[rest_offset:close]

        if keyword == "if":
            expr = self._expression(rest, rest_offset)
            return self._token(TokenType.BLOCK_IF, inner.strip(), start, expr=expr), end

        if keyword == "else":
            if not rest.strip():
                return self._token(TokenType.BLOCK_ELSE, "else", start), end
            else_if = _ELSE_IF_RE.match(rest)
            if else_if is None:
                raise self._parse_error(
                    f"unexpected {rest.strip()!r} after 'else'",
                    rest_offset,
                    ErrorCode.UNEXPECTED_TOKEN,
                )
            expr = self._expression(rest[else_if.end():], rest_offset + else_if.end())
            return self._token(TokenType.BLOCK_ELSE_IF, inner.strip(), start, expr=expr), end

        if keyword == "each":
            alias = index_alias = None
            alias_match = _EACH_ALIAS_RE.search(rest)
            if alias_match is not None:
                alias, index_alias = alias_match.group(1), alias_match.group(2)
                rest = rest[: alias_match.start()]
            expr = self._expression(rest, rest_offset)
            token = self._token(
                TokenType.BLOCK_EACH,
                inner.strip(),
                start,
                expr=expr,
                alias=alias,
                index_alias=index_alias,
            )
            return token, end

        if keyword == "end":
            if rest.strip():
                raise self._parse_error(
                    f"unexpected {rest.strip()!r} after 'end'",
                    rest_offset,
                    ErrorCode.UNEXPECTED_TOKEN,
                )
            return self._token(TokenType.BLOCK_END, "end", start), end

        if keyword == "import":
            return self._import_token(rest, rest_offset, start), end

        return self._token(TokenType.DIRECTIVE, source[start:end], start, target=keyword), end

    def _scan_legacy(self, start: int) -> tuple[Token, int] | None:
        source = self._source
        match = _LEGACY_RE.match(source, start)
        if match is None:
            return None
        close = source.find("-->", match.end())
        if close == -1:
            raise self._syntax_error(
                f"unterminated legacy marker '<!-- {match.group(1)}'",
                start,
                ErrorCode.UNCLOSED_LEGACY_MARKER,
            )
        keyword = match.group(1)
        rest_offset = match.end()
        rest = source[rest_offset:close]
        end = close + 3
        value = source[start:end]

        if keyword == "IF":
            expr = self._expression(rest, rest_offset, implicit_root=True)
            return self._token(TokenType.BLOCK_IF, value, start, expr=expr), end
        if keyword == "BEGIN":
            expr = self._expression(rest, rest_offset)
            return self._token(TokenType.BLOCK_EACH, value, start, expr=expr), end
        if keyword == "ELSE":
            if rest.strip():
                raise self._parse_error(
                    f"unexpected {rest.strip()!r} after 'ELSE'",
                    rest_offset,
                    ErrorCode.UNEXPECTED_TOKEN,
                )
            return self._token(TokenType.BLOCK_ELSE, value, start), end
        if keyword == "IMPORT":
            return self._import_token(rest, rest_offset, start), end
        # END / ENDIF: the trailing subject text is informational only
        target = "if" if keyword == "ENDIF" else None
        return self._token(TokenType.BLOCK_END, value, start, target=target), end

    def _import_token(self, rest: str, rest_offset: int, start: int) -> Token:
        match = _IMPORT_RE.match(rest)
        if match is None:
            raise self._parse_error(
                "import requires a template name", rest_offset, ErrorCode.INVALID_EXPRESSION
            )
        quoted, bare, with_text = match.groups()
        target = bare if bare is not None else re.sub(r"\\(.)", r"\1", quoted)
        if not target:
            raise self._parse_error(
                "import requires a template name", rest_offset, ErrorCode.INVALID_EXPRESSION
            )
        context = None
        if with_text is not None:
            context = self._expression(with_text, rest_offset + match.start(3))
        return self._token(
            TokenType.IMPORT, rest.strip(), start, target=target, context=context
        )


def tokenize(source: str, *, name: str | None = None, trim_blocks: bool = False) -> list[Token]:
    """Tokenize template source.

    Args:
        source: Template source text
        name: Template name for error messages
        trim_blocks: Drop one newline directly after each block marker

    Returns:
        Token list ending with an EOF token

    Raises:
        TemplateSyntaxError: A marker begins but never closes
        ParseError: A block marker holds an invalid expression
    """
    return Lexer(source, name=name, trim_blocks=trim_blocks).tokenize()
