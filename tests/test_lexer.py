"""Tests for the benchpress lexer."""

from __future__ import annotations

import pytest

from benchpress._types import TokenType
from benchpress.environment.exceptions import ErrorCode, TemplateSyntaxError
from benchpress.lexer import Lexer, tokenize
from benchpress.nodes import HelperCall, Literal, Not, Variable
from benchpress.parser import ParseError


def types(source: str, **kwargs) -> list[TokenType]:
    return [t.type for t in tokenize(source, **kwargs)]


class TestText:
    def test_empty_source(self):
        assert types("") == [TokenType.EOF]

    def test_plain_text_single_data_token(self):
        tokens = tokenize("Hello world")
        assert tokens[0].type is TokenType.DATA
        assert tokens[0].value == "Hello world"
        assert tokens[-1].type is TokenType.EOF

    def test_css_braces_pass_through(self):
        source = "a { color: red; } b {  }"
        tokens = tokenize(source)
        assert [t.type for t in tokens] == [TokenType.DATA, TokenType.EOF]
        assert tokens[0].value == source

    def test_script_braces_pass_through(self):
        source = "<script>function f() { return 1; }</script>"
        tokens = tokenize(source)
        assert tokens[0].value == source

    def test_html_comment_without_keyword_is_text(self):
        source = "<!-- just a comment -->"
        assert tokenize(source)[0].value == source

    def test_adjacent_text_merged(self):
        # The invalid interpolation and the surrounding text form one run
        tokens = tokenize("a {not valid} b")
        assert [t.type for t in tokens] == [TokenType.DATA, TokenType.EOF]
        assert tokens[0].value == "a {not valid} b"


class TestEscapes:
    def test_escaped_interpolation(self):
        tokens = tokenize(r"\{name}")
        assert tokens[0].type is TokenType.DATA
        assert tokens[0].value == "{name}"

    def test_escaped_block(self):
        tokens = tokenize(r"\{{{ if x }}}")
        assert [t.type for t in tokens] == [TokenType.DATA, TokenType.EOF]
        assert tokens[0].value == "{{{ if x }}}"

    def test_escaped_raw(self):
        assert tokenize(r"\{{html}}")[0].value == "{{html}}"

    def test_escaped_legacy(self):
        assert tokenize(r"\<!-- IF x -->")[0].value == "<!-- IF x -->"

    def test_backslash_elsewhere_kept(self):
        assert tokenize(r"C:\path")[0].value == r"C:\path"


class TestInterpolation:
    def test_variable(self):
        tokens = tokenize("Hi {name}!")
        assert [t.type for t in tokens] == [
            TokenType.DATA,
            TokenType.VARIABLE,
            TokenType.DATA,
            TokenType.EOF,
        ]
        var = tokens[1]
        assert isinstance(var.expr, Variable)
        assert var.expr.path == ("name",)
        assert var.raw is False

    def test_raw(self):
        token = tokenize("{{body}}")[0]
        assert token.type is TokenType.VARIABLE
        assert token.raw is True

    def test_spaces_inside(self):
        token = tokenize("{ user.name }")[0]
        assert token.expr.path == ("user", "name")

    def test_helper_call_token(self):
        token = tokenize('{join(tags, ", ")}')[0]
        assert token.type is TokenType.HELPER_CALL
        assert isinstance(token.expr, HelperCall)
        assert token.expr.name == "join"
        assert isinstance(token.expr.args[1], Literal)

    def test_negation(self):
        token = tokenize("{!flag}")[0]
        assert isinstance(token.expr, Not)

    def test_position(self):
        tokens = tokenize("line one\n  {x}")
        var = tokens[1]
        assert var.offset == 11
        assert (var.lineno, var.col_offset) == (2, 2)

    def test_unterminated_interpolation(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize("Hello {name")
        err = exc_info.value
        assert err.code is ErrorCode.UNCLOSED_INTERPOLATION
        assert err.offset == 6
        assert err.lineno == 1
        assert err.col_offset == 6

    def test_unterminated_raw_interpolation(self):
        with pytest.raises(TemplateSyntaxError):
            tokenize("{{body} and more")

    def test_open_brace_before_space_only_is_text(self):
        assert types("{ ") == [TokenType.DATA, TokenType.EOF]


class TestBlocks:
    def test_if_else_end(self):
        assert types("{{{ if a }}}x{{{ else }}}y{{{ end }}}") == [
            TokenType.BLOCK_IF,
            TokenType.DATA,
            TokenType.BLOCK_ELSE,
            TokenType.DATA,
            TokenType.BLOCK_END,
            TokenType.EOF,
        ]

    def test_else_if(self):
        tokens = tokenize("{{{ if a }}}{{{ else if b }}}{{{ end }}}")
        assert tokens[1].type is TokenType.BLOCK_ELSE_IF
        assert tokens[1].expr.path == ("b",)

    def test_each_with_aliases(self):
        token = tokenize("{{{ each posts as post, i }}}{{{ end }}}")[0]
        assert token.type is TokenType.BLOCK_EACH
        assert token.expr.path == ("posts",)
        assert token.alias == "post"
        assert token.index_alias == "i"

    def test_each_without_alias(self):
        token = tokenize("{{{ each items }}}{{{ end }}}")[0]
        assert token.alias is None
        assert token.index_alias is None

    def test_import_bare_name(self):
        token = tokenize("{{{ import partials/header }}}")[0]
        assert token.type is TokenType.IMPORT
        assert token.target == "partials/header"
        assert token.context is None

    def test_import_quoted_with_context(self):
        token = tokenize('{{{ import "my card" with user.profile }}}')[0]
        assert token.target == "my card"
        assert token.context.path == ("user", "profile")

    def test_unknown_directive(self):
        token = tokenize("{{{ include x }}}")[0]
        assert token.type is TokenType.DIRECTIVE
        assert token.target == "include"
        assert token.value == "{{{ include x }}}"

    def test_unterminated_block(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize("<p>\n{{{ if user </p>")
        err = exc_info.value
        assert err.code is ErrorCode.UNCLOSED_BLOCK_MARKER
        assert (err.lineno, err.col_offset) == (2, 0)
        assert "unterminated block marker" in str(err)

    def test_invalid_expression_in_block(self):
        with pytest.raises(ParseError) as exc_info:
            tokenize("{{{ if a b }}}{{{ end }}}")
        assert exc_info.value.code is ErrorCode.INVALID_EXPRESSION

    def test_missing_expression_in_block(self):
        with pytest.raises(ParseError):
            tokenize("{{{ if }}}{{{ end }}}")

    def test_end_with_trailing_text_rejected(self):
        with pytest.raises(ParseError):
            tokenize("{{{ if a }}}{{{ end a }}}")


class TestLegacy:
    def test_if_endif(self):
        tokens = tokenize("<!-- IF user -->hi<!-- ENDIF user -->")
        assert [t.type for t in tokens] == [
            TokenType.BLOCK_IF,
            TokenType.DATA,
            TokenType.BLOCK_END,
            TokenType.EOF,
        ]
        assert tokens[2].target == "if"

    def test_begin_end(self):
        tokens = tokenize("<!-- BEGIN items -->{name}<!-- END items -->")
        assert tokens[0].type is TokenType.BLOCK_EACH
        assert tokens[-2].type is TokenType.BLOCK_END
        assert tokens[-2].target is None

    def test_trailing_dashes_not_part_of_identifier(self):
        token = tokenize("<!-- IF a--><!-- ENDIF a-->")[0]
        assert token.expr.path == ("a",)

    def test_legacy_helper_gets_implicit_root(self):
        token = tokenize("<!-- IF function.check, x -->y<!-- ENDIF -->")[0]
        expr = token.expr
        assert isinstance(expr, HelperCall)
        assert expr.args[0].absolute is True
        assert expr.args[0].path == ()
        assert expr.args[1].path == ("x",)

    def test_unterminated_legacy(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize("<!-- IF user")
        assert exc_info.value.code is ErrorCode.UNCLOSED_LEGACY_MARKER

    def test_import(self):
        token = tokenize("<!-- IMPORT partials/nav -->")[0]
        assert token.type is TokenType.IMPORT
        assert token.target == "partials/nav"


class TestTrimBlocks:
    def test_default_keeps_newlines(self):
        tokens = tokenize("{{{ if a }}}\nx\n{{{ end }}}\n")
        data = [t.value for t in tokens if t.type is TokenType.DATA]
        assert data == ["\nx\n", "\n"]

    def test_trim_removes_one_newline(self):
        tokens = tokenize("{{{ if a }}}\n\nx\n{{{ end }}}\n", trim_blocks=True)
        data = [t.value for t in tokens if t.type is TokenType.DATA]
        assert data == ["\nx\n"]

    def test_trim_crlf(self):
        tokens = tokenize("{{{ each a }}}\r\nx{{{ end }}}", trim_blocks=True)
        data = [t.value for t in tokens if t.type is TokenType.DATA]
        assert data == ["x"]

    def test_interpolation_never_trims(self):
        tokens = tokenize("{x}\ny", trim_blocks=True)
        assert tokens[1].value == "\ny"


class TestLocate:
    def test_locate_offsets(self):
        lexer = Lexer("ab\ncd\n\nef")
        assert lexer.locate(0) == (1, 0)
        assert lexer.locate(3) == (2, 0)
        assert lexer.locate(4) == (2, 1)
        assert lexer.locate(7) == (4, 0)
