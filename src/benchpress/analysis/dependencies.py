"""Partial-reference analysis and import-graph cycle detection.

A template's references are the names of the partials it imports. They
are recorded by the parser but resolved only at render time, so the
compiler walks the graph across templates before generating code and
rejects any cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from benchpress.analysis.visitor import walk
from benchpress.nodes import HelperCall, Partial

if TYPE_CHECKING:
    from benchpress.nodes import Node

logger = logging.getLogger(__name__)


def collect_partials(node: Node) -> frozenset[str]:
    """Names of every partial imported anywhere under ``node``."""
    return frozenset(child.name for child in walk(node) if isinstance(child, Partial))


def collect_helpers(node: Node) -> frozenset[str]:
    """Names of every helper called anywhere under ``node``."""
    return frozenset(child.name for child in walk(node) if isinstance(child, HelperCall))


def contains_helper_call(node: Node) -> bool:
    return any(isinstance(child, HelperCall) for child in walk(node))


def find_import_cycle(
    start: str,
    references: Iterable[str],
    resolve: Callable[[str], Iterable[str] | None],
) -> list[str] | None:
    """Depth-first search of the import graph rooted at ``start``.

    Args:
        start: Name of the template being compiled
        references: Partials ``start`` imports (from its fresh parse)
        resolve: Returns the partials a named template imports, or None
            when that template cannot be found (it is then a leaf; a
            missing partial is a render-time error, not a cycle)

    Returns:
        The cycle as a name chain whose first and last entries are equal
        (``["a", "b", "a"]``), or None when the graph is acyclic.
    """
    path = [start]
    on_path = {start}
    done: set[str] = set()
    # Each stack entry is the iterator of children still to visit for path[i]
    stack = [iter(sorted(set(references)))]

    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            finished = path.pop()
            on_path.discard(finished)
            done.add(finished)
            continue
        if child in on_path:
            chain = [*path[path.index(child) :], child]
            logger.debug("import cycle detected: %s", " -> ".join(chain))
            return chain
        if child in done:
            continue
        refs = resolve(child)
        if refs is None:
            done.add(child)
            continue
        path.append(child)
        on_path.add(child)
        stack.append(iter(sorted(set(refs))))

    return None
