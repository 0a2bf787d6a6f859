"""Control flow statement compilation for benchpress compiler.

Provides mixin for compiling conditionals and iteration.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
from collections.abc import Sequence
from typing import TYPE_CHECKING

from benchpress.nodes import Variable

if TYPE_CHECKING:
    from benchpress.nodes import Conditional, Expr, Iteration, Node


def _name(id_: str, store: bool = False) -> ast.Name:
    return ast.Name(id=id_, ctx=ast.Store() if store else ast.Load())


class ControlFlowMixin:
    """Mixin for compiling control flow statements.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────────────
    # Host attributes and cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        # Host attributes (from Compiler.__init__)
        _block_counter: int
        _loop_paths: list[tuple[str, ...] | None]

        # From ExpressionCompilationMixin
        def _compile_expr(self, node: Expr) -> ast.expr: ...
        def _compile_test(self, node: Expr) -> ast.expr: ...
        def _static_truth(self, node: Expr) -> bool | None: ...

        # From FStringCoalescingMixin
        def _compile_body_with_coalescing(self, nodes: Sequence[Node]) -> list[ast.stmt]: ...

    def _live_branches(
        self, node: Conditional
    ) -> tuple[list[tuple[Expr, Sequence[Node]]], Sequence[Node]]:
        """Drop branches whose test is statically false.

        A statically true test ends the chain: its body becomes the else
        branch of whatever dynamic branches precede it.

        Returns:
            (dynamic branches in order, else body)
        """
        live: list[tuple[Expr, Sequence[Node]]] = []
        for test, body in [(node.test, node.body), *node.elif_]:
            truth = self._static_truth(test)
            if truth is False:
                continue
            if truth is True:
                return live, body
            live.append((test, body))
        return live, node.else_

    def _compile_conditional(self, node: Conditional) -> list[ast.stmt]:
        """Compile {{{ if }}} with its else-if chain and else branch.

        Generates:
            if _truthy(a):
                ...
            elif _truthy(b):
                ...
            else:
                ...
        """
        live, else_body = self._live_branches(node)
        orelse = self._compile_body_with_coalescing(else_body)
        if not live:
            return orelse

        for test, body in reversed(live):
            orelse = [
                ast.If(
                    test=self._compile_test(test),
                    body=self._compile_body_with_coalescing(body) or [ast.Pass()],
                    orelse=orelse,
                )
            ]
        return orelse

    def _compile_iteration(self, node: Iteration) -> list[ast.stmt]:
        """Compile {{{ each }}} with its optional empty branch.

        Generates:
            _items_N = _iterate(collection)
            if _items_N:
                _parent_N = _frame
                _length_N = _len(_items_N)
                for _index_N, (_key_N, _value_N) in _enumerate(_items_N):
                    _frame = _loop_frame(_parent_N, _key_N, _value_N,
                                         _index_N, _length_N, alias, index_alias)
                    ... body ...
                _frame = _parent_N
            else:
                ... empty branch ...

        The collection is resolved exactly once, and the body never runs
        for zero elements.
        """
        self._block_counter += 1
        n = self._block_counter
        items, parent, length = f"_items_{n}", f"_parent_{n}", f"_length_{n}"
        index, key, value = f"_index_{n}", f"_key_{n}", f"_value_{n}"

        collection = self._compile_expr(node.iter)

        loop_path: tuple[str, ...] | None = None
        if isinstance(node.iter, Variable) and not node.iter.absolute and node.iter.depth is None:
            loop_path = tuple(node.iter.path)
        self._loop_paths.append(loop_path)
        try:
            body = self._compile_body_with_coalescing(node.body)
        finally:
            self._loop_paths.pop()

        frame_stmt = ast.Assign(
            targets=[_name("_frame", store=True)],
            value=ast.Call(
                func=_name("_loop_frame"),
                args=[
                    _name(parent),
                    _name(key),
                    _name(value),
                    _name(index),
                    _name(length),
                    ast.Constant(value=node.alias),
                    ast.Constant(value=node.index_alias),
                ],
                keywords=[],
            ),
        )

        loop = ast.For(
            target=ast.Tuple(
                elts=[
                    _name(index, store=True),
                    ast.Tuple(
                        elts=[_name(key, store=True), _name(value, store=True)],
                        ctx=ast.Store(),
                    ),
                ],
                ctx=ast.Store(),
            ),
            iter=ast.Call(func=_name("_enumerate"), args=[_name(items)], keywords=[]),
            body=[frame_stmt, *body],
            orelse=[],
        )

        return [
            ast.Assign(
                targets=[_name(items, store=True)],
                value=ast.Call(func=_name("_iterate"), args=[collection], keywords=[]),
            ),
            ast.If(
                test=_name(items),
                body=[
                    ast.Assign(targets=[_name(parent, store=True)], value=_name("_frame")),
                    ast.Assign(
                        targets=[_name(length, store=True)],
                        value=ast.Call(func=_name("_len"), args=[_name(items)], keywords=[]),
                    ),
                    loop,
                    ast.Assign(targets=[_name("_frame", store=True)], value=_name(parent)),
                ],
                orelse=self._compile_body_with_coalescing(node.empty),
            ),
        ]
