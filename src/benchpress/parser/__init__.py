"""benchpress parser: token stream to node tree.

Usage:
    >>> from benchpress.lexer import tokenize
    >>> from benchpress.parser import Parser
    >>> root = Parser(tokenize("Hi {name}"), name="greeting").parse()

"""

from benchpress.parser.core import Parser
from benchpress.parser.errors import ParseError
from benchpress.parser.expressions import ExpressionError, parse_expression

__all__ = ["ExpressionError", "ParseError", "Parser", "parse_expression"]
