"""Expression compilation for benchpress compiler.

Provides mixin for compiling benchpress expression nodes to Python AST
expressions. Every path lookup goes through a total runtime resolver, so
generated expressions never raise for missing data.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import ast
import inspect
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from benchpress.environment.exceptions import CompileError, ErrorCode
from benchpress.nodes import HelperCall, Literal, Not, Variable

if TYPE_CHECKING:
    from benchpress.environment import Environment
    from benchpress.nodes import Expr


def _name(id_: str) -> ast.Name:
    return ast.Name(id=id_, ctx=ast.Load())


def _call(func: str, *args: ast.expr) -> ast.Call:
    return ast.Call(func=_name(func), args=list(args), keywords=[])


class ExpressionCompilationMixin:
    """Mixin for compiling expressions.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks.

    """

    __slots__ = ()

    if TYPE_CHECKING:
        _env: Environment | None
        _name: str | None
        # Iteration paths of the enclosing ``each`` blocks, outermost first
        _loop_paths: list[tuple[str, ...] | None]

    def _compile_expr(self, node: Expr) -> ast.expr:
        """Compile an expression to a Python AST expression.

        Complexity: O(1) type dispatch.
        """
        if isinstance(node, Variable):
            return self._compile_variable(node)
        if isinstance(node, Literal):
            return ast.Constant(value=node.value)
        if isinstance(node, Not):
            return ast.UnaryOp(op=ast.Not(), operand=self._compile_test(node.operand))
        if isinstance(node, HelperCall):
            return self._compile_helper_call(node)
        raise TypeError(f"cannot compile expression node {type(node).__name__}")

    def _compile_test(self, node: Expr) -> ast.expr:
        """Compile an expression used as a condition: ``_truthy(expr)``."""
        if isinstance(node, Not):
            return ast.UnaryOp(op=ast.Not(), operand=self._compile_test(node.operand))
        return _call("_truthy", self._compile_expr(node))

    def _compile_variable(self, node: Variable) -> ast.expr:
        """Compile a path lookup.

        ``@root.a`` -> ``_lookup_root(_frame, ('a',))``
        ``../a``    -> ``_lookup_at(_frame, 1, ('a',))``
        ``a.b``     -> ``_lookup(_frame, ('a', 'b'))``

        A relative path that starts with the collection path of an
        enclosing ``each`` block (``{items.name}`` inside
        ``{{{ each items }}}``) addresses the current element of that loop.
        """
        frame = _name("_frame")
        path = tuple(node.path)
        if node.absolute:
            return _call("_lookup_root", frame, ast.Constant(value=path))
        if node.depth is not None:
            return _call(
                "_lookup_at", frame, ast.Constant(value=node.depth), ast.Constant(value=path)
            )

        for depth, prefix in enumerate(reversed(self._loop_paths)):
            if prefix and len(path) > len(prefix) and path[: len(prefix)] == prefix:
                return _call(
                    "_lookup_at",
                    frame,
                    ast.Constant(value=depth),
                    ast.Constant(value=path[len(prefix) :]),
                )
        return _call("_lookup", frame, ast.Constant(value=path))

    def _compile_helper_call(self, node: HelperCall) -> ast.expr:
        """Compile ``name(args)`` to ``_call_helper(_helpers, 'name', *args)``.

        The helper is resolved by name at render time.
        """
        self._check_helper_arity(node)
        return _call(
            "_call_helper",
            _name("_helpers"),
            ast.Constant(value=node.name),
            *(self._compile_expr(arg) for arg in node.args),
        )

    def _check_helper_arity(self, node: HelperCall) -> None:
        """Reject a call site whose argument count the registered helper cannot accept.

        Render-time helpers passed to ``Template.render`` replace a registered
        one by name without a second check; unregistered names are skipped.
        """
        if self._env is None:
            return
        signature = self._env.helpers.signature(node.name)
        if signature is None:
            return
        try:
            signature.bind(*range(len(node.args)))
        except TypeError:
            expected = _describe_arity(signature)
            raise CompileError(
                f"helper '{node.name}' called with {len(node.args)} argument(s), "
                f"expects {expected}",
                template_name=self._name,
                lineno=node.lineno,
                code=ErrorCode.HELPER_ARITY,
            ) from None

    def _static_truth(self, node: Expr) -> bool | None:
        """Truth value of ``node`` if known at compile time, else None."""
        if isinstance(node, Literal):
            return node.value != ""
        if isinstance(node, Not):
            inner = self._static_truth(node.operand)
            return None if inner is None else not inner
        return None


def _describe_arity(signature: inspect.Signature) -> str:
    params: Sequence[Any] = list(signature.parameters.values())
    positional = [
        p
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        required = sum(1 for p in positional if p.default is inspect.Parameter.empty)
        return f"at least {required}"
    required = sum(1 for p in positional if p.default is inspect.Parameter.empty)
    if required == len(positional):
        return str(required)
    return f"{required} to {len(positional)}"
