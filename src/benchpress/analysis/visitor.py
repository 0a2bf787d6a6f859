"""Shared visitor patterns for benchpress AST analysis.

Provides visit_children for generic traversal. Used by the dependency
walker and by the compiler's line-tracking checks.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchpress.nodes import Node

# Shared attr lists for generic child traversal
CONTAINER_ATTRS = ("body", "else_", "empty", "elif_")
EXPR_ATTRS = ("test", "expr", "iter", "operand", "context")
SEQUENCE_ATTRS = ("args",)


def visit_children(node: Node, visit: Callable[[Node], None]) -> None:
    """Visit all child nodes of a benchpress AST node.

    Handles container attrs (body, else_, empty, elif_), expression attrs
    and helper-call arguments.
    """
    for attr in CONTAINER_ATTRS:
        children = getattr(node, attr, None)
        if not children:
            continue
        for child in children:
            if isinstance(child, tuple):
                test, body = child
                visit(test)
                for b in body:
                    visit(b)
            else:
                visit(child)

    for attr in EXPR_ATTRS:
        child = getattr(node, attr, None)
        if child is not None and hasattr(child, "lineno"):
            visit(child)

    for attr in SEQUENCE_ATTRS:
        for child in getattr(node, attr, None) or ():
            visit(child)


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and every descendant, depth first in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        children: list[Node] = []
        visit_children(current, children.append)
        stack.extend(reversed(children))
