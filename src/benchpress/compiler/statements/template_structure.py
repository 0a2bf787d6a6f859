"""Partial inclusion compilation for benchpress compiler.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchpress.nodes import Expr, Partial


class TemplateStructureMixin:
    """Mixin for compiling ``{{{ import }}}`` partials."""

    __slots__ = ()

    if TYPE_CHECKING:
        # From ExpressionCompilationMixin
        def _compile_expr(self, node: Expr) -> ast.expr: ...

        # From Compiler core
        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

    def _compile_partial(self, node: Partial) -> list[ast.stmt]:
        """Compile a partial import.

        Without ``with``, the partial renders inside the caller's scope chain:
            _append(_include('name', _frame, _helpers))

        With ``with path``, the resolved value becomes the partial's root:
            _append(_include('name', _frame, _helpers, <path>))
        """
        args: list[ast.expr] = [
            ast.Constant(value=node.name),
            ast.Name(id="_frame", ctx=ast.Load()),
            ast.Name(id="_helpers", ctx=ast.Load()),
        ]
        if node.context is not None:
            args.append(self._compile_expr(node.context))

        include_call = ast.Call(
            func=ast.Name(id="_include", ctx=ast.Load()),
            args=args,
            keywords=[],
        )
        return [self._emit_output(include_call)]
