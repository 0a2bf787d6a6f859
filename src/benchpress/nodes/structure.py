"""Template structure nodes for the benchpress AST."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from benchpress.nodes.base import Node
from benchpress.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Partial(Node):
    """Partial inclusion: {{{ import name }}} or {{{ import "name" with path }}}

    The referenced template is resolved at render time; cycles are
    rejected by the compiler.
    """

    name: str
    context: Expr | None = None


@dataclass(frozen=True, slots=True)
class Root(Node):
    """Root node for one template."""

    body: Sequence[Node]
