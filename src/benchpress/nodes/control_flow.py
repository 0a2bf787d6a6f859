"""Control flow nodes for the benchpress AST."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from benchpress.nodes.base import Node
from benchpress.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Conditional(Node):
    """Conditional: {{{ if cond }}}...{{{ else if cond }}}...{{{ else }}}...{{{ end }}}"""

    test: Expr
    body: Sequence[Node]
    elif_: Sequence[tuple[Expr, Sequence[Node]]] = ()
    else_: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class Iteration(Node):
    """Iteration: {{{ each items as item, i }}}...{{{ else }}}...{{{ end }}}

    The ``else`` branch is the empty branch, rendered when the collection
    is absent or has no elements.
    """

    iter: Expr
    body: Sequence[Node]
    empty: Sequence[Node] = ()
    alias: str | None = None
    index_alias: str | None = None
