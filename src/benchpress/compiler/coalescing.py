"""F-string coalescing for benchpress compiler.

Consecutive output nodes are merged into a single ``_append`` call:

    Hello {name}, you have {count} messages

compiles to one statement instead of five:

    _append(f'Hello {_escape(_lookup(_frame, ("name",)))}, you have '
            f'{_escape(_lookup(_frame, ("count",)))} messages')

Nodes whose output is known at compile time fold into the literal parts:
text, string-literal interpolations, and conditionals whose tests are
string literals and whose selected branch is itself static. Helper calls
are never coalesced because they carry a line marker for error reporting.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from collections.abc import Sequence
from typing import TYPE_CHECKING

from benchpress.analysis import contains_helper_call
from benchpress.nodes import Conditional, Literal, Output, Text
from benchpress.utils.html import html_escape

if TYPE_CHECKING:
    from benchpress.nodes import Expr, Node


class FStringCoalescingMixin:
    """Mixin that merges runs of output nodes into one f-string append."""

    __slots__ = ()

    if TYPE_CHECKING:
        # From Compiler core
        def _compile_node(self, node: Node) -> list[ast.stmt]: ...
        def _emit_output(self, value_expr: ast.expr) -> ast.stmt: ...

        # From BasicStatementMixin
        def _output_value(self, node: Output) -> ast.expr: ...

        # From ControlFlowMixin
        def _live_branches(
            self, node: Conditional
        ) -> tuple[list[tuple[Expr, Sequence[Node]]], Sequence[Node]]: ...

    def _static_output(self, node: Node) -> str | None:
        """The exact text ``node`` renders if known at compile time, else None."""
        if isinstance(node, Text):
            return node.value
        if isinstance(node, Output) and isinstance(node.expr, Literal):
            return html_escape(node.expr.value) if node.escape else node.expr.value
        if isinstance(node, Conditional):
            live, chosen = self._live_branches(node)
            if live:
                return None
            parts = [self._static_output(child) for child in chosen]
            if any(part is None for part in parts):
                return None
            return "".join(parts)  # type: ignore[arg-type]
        return None

    def _is_coalescable(self, node: Node) -> bool:
        if self._static_output(node) is not None:
            return True
        return isinstance(node, Output) and not contains_helper_call(node.expr)

    def _compile_body_with_coalescing(self, nodes: Sequence[Node]) -> list[ast.stmt]:
        """Compile a node list, merging coalescable runs."""
        stmts: list[ast.stmt] = []
        run: list[Node] = []
        for node in nodes:
            if self._is_coalescable(node):
                run.append(node)
                continue
            stmts.extend(self._compile_run(run))
            run = []
            stmts.extend(self._compile_node(node))
        stmts.extend(self._compile_run(run))
        return stmts

    def _compile_run(self, run: Sequence[Node]) -> list[ast.stmt]:
        parts: list[str | ast.expr] = []
        for node in run:
            static = self._static_output(node)
            if static is None:
                parts.append(self._output_value(node))  # type: ignore[arg-type]
            elif not static:
                continue
            elif parts and isinstance(parts[-1], str):
                parts[-1] += static
            else:
                parts.append(static)

        if not parts:
            return []
        if len(parts) == 1:
            only = parts[0]
            return [self._emit_output(ast.Constant(value=only) if isinstance(only, str) else only)]

        values: list[ast.expr] = [
            ast.Constant(value=part)
            if isinstance(part, str)
            else ast.FormattedValue(value=part, conversion=-1, format_spec=None)
            for part in parts
        ]
        return [self._emit_output(ast.JoinedStr(values=values))]
