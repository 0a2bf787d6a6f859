"""benchpress AST nodes.

Immutable, slotted dataclasses produced by the parser and consumed by the
compiler and the analysis package.

Node tree:
    Root
    ├── Text
    ├── Output(expr)
    ├── Conditional(test, body, elif_, else_)
    ├── Iteration(iter, body, empty, alias, index_alias)
    └── Partial(name, context)

Expressions:
    Variable | Literal | Not | HelperCall

"""

from benchpress.nodes.base import Node
from benchpress.nodes.control_flow import Conditional, Iteration
from benchpress.nodes.expressions import Expr, HelperCall, Literal, Not, Variable
from benchpress.nodes.output import Output, Text
from benchpress.nodes.structure import Partial, Root

__all__ = [
    "Conditional",
    "Expr",
    "HelperCall",
    "Iteration",
    "Literal",
    "Node",
    "Not",
    "Output",
    "Partial",
    "Root",
    "Text",
    "Variable",
]
