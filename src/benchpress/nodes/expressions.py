"""Expression nodes for the benchpress AST.

Expressions are deliberately small: path lookups, string literals,
negation and helper calls whose arguments are themselves expressions.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from benchpress.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Expr(Node):
    """Base class for expressions."""


@dataclass(frozen=True, slots=True)
class Variable(Expr):
    """Path lookup: {user.name}, {./name}, {../title}, {@root.site}

    Attributes:
        path: Path segments after any scope prefix
        absolute: Resolve from the root context (``@root``)
        depth: None searches the whole scope chain; 0 is the current
            scope only (``./``); n is n scopes up (``../`` repeated)
    """

    path: Sequence[str]
    absolute: bool = False
    depth: int | None = None


@dataclass(frozen=True, slots=True)
class Literal(Expr):
    """String literal: "text" """

    value: str


@dataclass(frozen=True, slots=True)
class Not(Expr):
    """Negation: !expr"""

    operand: Expr


@dataclass(frozen=True, slots=True)
class HelperCall(Expr):
    """Helper invocation: {name(arg, "literal")} or legacy {function.name, arg}"""

    name: str
    args: Sequence[Expr] = ()
