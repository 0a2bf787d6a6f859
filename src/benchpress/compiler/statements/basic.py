"""Basic statement compilation for benchpress compiler.

Provides mixin for compiling output statements (text, interpolation).

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchpress.nodes import Expr, Output, Text


class BasicStatementMixin:
    """Mixin for compiling basic output statements.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────────────
    # Cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        # From ExpressionCompilationMixin
        def _compile_expr(self, node: Expr) -> ast.expr: ...

        # From Compiler core
        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

    def _compile_text(self, node: Text) -> list[ast.stmt]:
        """Compile literal text: _append("literal text")"""
        if not node.value:
            return []

        return [self._emit_output(ast.Constant(value=node.value))]

    def _compile_output(self, node: Output) -> list[ast.stmt]:
        """Compile {expr} / {{expr}} output.

        Escaped: _append(_escape(expr))
        Raw: _append(_to_text(expr))
        """
        return [self._emit_output(self._output_value(node))]

    def _output_value(self, node: Output) -> ast.expr:
        # _escape handles text conversion itself so Markup is detected first
        func = "_escape" if node.escape else "_to_text"
        return ast.Call(
            func=ast.Name(id=func, ctx=ast.Load()),
            args=[self._compile_expr(node.expr)],
            keywords=[],
        )
