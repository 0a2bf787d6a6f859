"""benchpress Compiler Core: main Compiler class.

The Compiler transforms the benchpress AST into a Python AST, then compiles
it to an executable code object. Uses a mixin-based design for
maintainability.

Design Principles:
1. **AST-to-AST**: Generate `ast.Module`, not source strings
2. **StringBuilder**: Output via `buf.append()`, join at end
3. **Coalescing**: Static text and adjacent outputs fold into one f-string
4. **O(1) dispatch**: Dict-based node type → handler lookup

Generated code has a single entry point:

    ```python
    def render(_frame, _helpers):
        buf = []
        _append = buf.append
        _append(f'Hello {_escape(_lookup(_frame, ("name",)))}!')
        return ''.join(buf)
    ```

``_frame`` is the innermost scope of the chain described in
:mod:`benchpress.template.scope`; ``_helpers`` is the helper mapping for
this render.

"""

from __future__ import annotations

import ast
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from benchpress.analysis import collect_partials, contains_helper_call, find_import_cycle
from benchpress.compiler.coalescing import FStringCoalescingMixin
from benchpress.compiler.expressions import ExpressionCompilationMixin
from benchpress.compiler.statements import StatementCompilationMixin
from benchpress.environment.exceptions import CompileError
from benchpress.nodes import Conditional, Iteration, Output, Partial

if TYPE_CHECKING:
    import types

    from benchpress.environment import Environment
    from benchpress.nodes import Node, Root

logger = logging.getLogger(__name__)


class Compiler(
    ExpressionCompilationMixin,
    StatementCompilationMixin,
    FStringCoalescingMixin,
):
    """Compile benchpress AST to Python code objects.

    Attributes:
        _env: Parent Environment (helper signatures, import graph), or None
            to compile without arity or cycle checks
        _name: Template name for error messages
        _filename: Source file path for compile()
        _loop_paths: Collection paths of enclosing each blocks
        module: The generated ``ast.Module`` of the last compile

    Line Tracking:
        Nodes that call user code (helper calls, partials) are preceded by
        ``_get_render_ctx().line = N``. This updates the ContextVar-stored
        RenderContext instead of touching the user's data, so a helper that
        raises is reported with its template line.

    Example:
            >>> from benchpress.compiler import Compiler
            >>> from benchpress.parser import Parser
            >>> from benchpress.lexer import tokenize
            >>>
            >>> root = Parser(tokenize("Hello, {name}!")).parse()
            >>> code = Compiler().compile(root, name="greeting")

    """

    __slots__ = (
        "_block_counter",
        "_env",
        "_filename",
        "_loop_paths",
        "_name",
        "_node_dispatch",
        "module",
    )

    def __init__(self, env: Environment | None = None):
        self._env = env
        self._name: str | None = None
        self._filename: str | None = None
        self._loop_paths: list[tuple[str, ...] | None] = []
        self._block_counter = 0
        self.module: ast.Module | None = None

    def compile(
        self,
        node: Root,
        name: str | None = None,
        filename: str | None = None,
    ) -> types.CodeType:
        """Compile template AST to code object.

        Args:
            node: Root node
            name: Template name for error messages and cycle detection
            filename: Source filename for error messages

        Returns:
            Compiled code object ready for exec()

        Raises:
            CompileError: Cyclic partial import or helper arity mismatch
        """
        self._name = name
        self._filename = filename
        self._loop_paths = []
        self._block_counter = 0

        self._check_import_cycles(node)

        module = self._compile_template(node)
        ast.fix_missing_locations(module)
        self.module = module

        logger.debug("compiled template %r (%d statements)", name, len(module.body[0].body))
        return compile(module, filename or name or "<template>", "exec")

    def _check_import_cycles(self, node: Root) -> None:
        if self._env is None or self._name is None:
            return
        references = collect_partials(node)
        if not references:
            return
        chain = find_import_cycle(self._name, references, self._env._partial_references)
        if chain is not None:
            raise CompileError.cycle(chain)

    def _emit_output(self, value_expr: ast.expr) -> ast.stmt:
        """Generate output statement: _append(value)."""
        return ast.Expr(
            value=ast.Call(
                func=ast.Name(id="_append", ctx=ast.Load()),
                args=[value_expr],
                keywords=[],
            ),
        )

    def _compile_template(self, node: Root) -> ast.Module:
        """Generate the Python module holding ``render``."""
        return ast.Module(body=[self._make_render_function(node)], type_ignores=[])

    def _make_render_function(self, node: Root) -> ast.FunctionDef:
        """Generate the render(_frame, _helpers) function."""
        body: list[ast.stmt] = [
            # buf = []
            ast.Assign(
                targets=[ast.Name(id="buf", ctx=ast.Store())],
                value=ast.List(elts=[], ctx=ast.Load()),
            ),
            # _append = buf.append (cache method lookup)
            ast.Assign(
                targets=[ast.Name(id="_append", ctx=ast.Store())],
                value=ast.Attribute(
                    value=ast.Name(id="buf", ctx=ast.Load()),
                    attr="append",
                    ctx=ast.Load(),
                ),
            ),
        ]

        body.extend(self._compile_body_with_coalescing(node.body))

        # return ''.join(buf)
        body.append(
            ast.Return(
                value=ast.Call(
                    func=ast.Attribute(
                        value=ast.Constant(value=""),
                        attr="join",
                        ctx=ast.Load(),
                    ),
                    args=[ast.Name(id="buf", ctx=ast.Load())],
                    keywords=[],
                ),
            )
        )

        return ast.FunctionDef(
            name="render",
            args=ast.arguments(
                posonlyargs=[],
                args=[ast.arg(arg="_frame"), ast.arg(arg="_helpers")],
                vararg=None,
                kwonlyargs=[],
                kw_defaults=[],
                kwarg=None,
                defaults=[],
            ),
            body=body,
            decorator_list=[],
            returns=None,
            type_params=[],
        )

    def _needs_line_marker(self, node: Node) -> bool:
        if isinstance(node, Partial):
            return True
        if isinstance(node, Output):
            return contains_helper_call(node.expr)
        if isinstance(node, Conditional):
            return contains_helper_call(node.test) or any(
                contains_helper_call(test) for test, _ in node.elif_
            )
        if isinstance(node, Iteration):
            return contains_helper_call(node.iter)
        return False

    def _make_line_marker(self, lineno: int) -> ast.stmt:
        """Generate RenderContext line update for error tracking.

        Generates: _get_render_ctx().line = lineno
        """
        return ast.Assign(
            targets=[
                ast.Attribute(
                    value=ast.Call(
                        func=ast.Name(id="_get_render_ctx", ctx=ast.Load()),
                        args=[],
                        keywords=[],
                    ),
                    attr="line",
                    ctx=ast.Store(),
                )
            ],
            value=ast.Constant(value=lineno),
        )

    def _compile_node(self, node: Node) -> list[ast.stmt]:
        """Compile a single AST node to Python statements.

        Complexity: O(1) type dispatch using class name lookup.
        """
        stmts: list[ast.stmt] = []
        if self._needs_line_marker(node):
            stmts.append(self._make_line_marker(node.lineno))

        handler = self._get_node_dispatch().get(type(node).__name__)
        if handler is None:
            raise TypeError(f"cannot compile node {type(node).__name__}")
        stmts.extend(handler(node))
        return stmts

    def _get_node_dispatch(self) -> dict[str, Callable[[Node], list[ast.stmt]]]:
        """Get node type dispatch table (cached on first call)."""
        if not hasattr(self, "_node_dispatch"):
            self._node_dispatch = {
                "Text": self._compile_text,
                "Output": self._compile_output,
                "Conditional": self._compile_conditional,
                "Iteration": self._compile_iteration,
                "Partial": self._compile_partial,
            }
        return self._node_dispatch
