"""Output nodes for the benchpress AST."""

from __future__ import annotations

from dataclasses import dataclass

from benchpress.nodes.base import Node
from benchpress.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Text(Node):
    """Literal text between directives, emitted verbatim."""

    value: str


@dataclass(frozen=True, slots=True)
class Output(Node):
    """Interpolation: {expr} (escaped) or {{expr}} (raw)"""

    expr: Expr
    escape: bool = True
