"""Scope chain for benchpress rendering.

Context data is arbitrarily shaped: nested mappings, sequences, plain
objects and scalars. Every value is classified into one of four container
kinds and path segments are resolved against that kind, so lookup is
total: a segment that does not exist yields :data:`MISSING`, never an
exception.

Frames form a singly linked list from the innermost iteration scope up to
the root context::

    Frame(element of inner loop, bindings={"@value", "@index", ...})
      -> Frame(element of outer loop, ...)
        -> Frame(root context)

A relative path searches that chain innermost first. The first frame that
binds the head segment wins and the remaining segments are resolved inside
the value it produced.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from enum import Enum
from typing import Any


class _Missing:
    """Sentinel for a path that resolves nowhere. Falsy, renders empty."""

    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class ContainerKind(Enum):
    """How a value is traversed by path segments."""

    MAPPING = "mapping"  # key lookup
    SEQUENCE = "sequence"  # integer index, plus ``length``
    OBJECT = "object"  # public attribute lookup
    SCALAR = "scalar"  # no members (``length`` on strings)


_SCALAR_TYPES = (str, bytes, int, float, complex, bool, type(None))


def container_kind(value: Any) -> ContainerKind:
    """Classify ``value`` for path traversal."""
    if isinstance(value, Mapping):
        return ContainerKind.MAPPING
    if isinstance(value, _SCALAR_TYPES) or value is MISSING:
        return ContainerKind.SCALAR
    if isinstance(value, Sequence):
        return ContainerKind.SEQUENCE
    return ContainerKind.OBJECT


def get_member(value: Any, segment: str) -> Any:
    """Resolve one path segment against ``value``."""
    kind = container_kind(value)
    if kind is ContainerKind.MAPPING:
        return value.get(segment, MISSING)
    if kind is ContainerKind.SEQUENCE:
        if segment == "length":
            return len(value)
        if segment.isdigit():
            index = int(segment)
            return value[index] if index < len(value) else MISSING
        return MISSING
    if kind is ContainerKind.OBJECT:
        if segment.startswith("_"):
            return MISSING
        return getattr(value, segment, MISSING)
    if segment == "length" and isinstance(value, str):
        return len(value)
    return MISSING


def walk(value: Any, segments: Sequence[str]) -> Any:
    """Resolve successive ``segments`` starting at ``value``."""
    for segment in segments:
        if value is MISSING or value is None:
            return MISSING
        value = get_member(value, segment)
    return value


class Frame:
    """One level of the scope chain.

    Attributes:
        value: The data this scope exposes (root context or loop element)
        parent: Enclosing frame, None for the root
        bindings: Names bound by the iteration that created this frame
            (``@value``, ``@index``, ``@key``, ``@first``, ``@last``,
            ``@length`` and any aliases); they shadow members of ``value``
        root: The outermost frame of this chain
    """

    __slots__ = ("bindings", "parent", "root", "value")

    def __init__(
        self,
        value: Any,
        parent: Frame | None = None,
        bindings: dict[str, Any] | None = None,
    ):
        self.value = value
        self.parent = parent
        self.bindings = bindings
        self.root: Frame = parent.root if parent is not None else self

    def resolve_head(self, name: str) -> Any:
        """Resolve the first path segment in this frame only."""
        bindings = self.bindings
        if bindings is not None and name in bindings:
            return bindings[name]
        return get_member(self.value, name)

    def up(self, depth: int) -> Frame | None:
        """The frame ``depth`` levels out, or None past the root."""
        frame: Frame | None = self
        for _ in range(depth):
            if frame is None:
                return None
            frame = frame.parent
        return frame

    def __repr__(self) -> str:
        depth = 0
        frame = self.parent
        while frame is not None:
            depth += 1
            frame = frame.parent
        return f"<Frame depth={depth} value={self.value!r}>"


def loop_frame(
    parent: Frame,
    key: Any,
    value: Any,
    index: int,
    length: int,
    alias: str | None = None,
    index_alias: str | None = None,
) -> Frame:
    """Create the frame for one iteration step."""
    bindings = {
        "@value": value,
        "@key": key,
        "@index": index,
        "@first": index == 0,
        "@last": index == length - 1,
        "@length": length,
    }
    if alias is not None:
        bindings[alias] = value
    if index_alias is not None:
        bindings[index_alias] = key
    return Frame(value, parent, bindings)


def lookup(frame: Frame, path: Sequence[str]) -> Any:
    """Resolve a relative path by searching the scope chain innermost first."""
    head = path[0]
    current: Frame | None = frame
    while current is not None:
        found = current.resolve_head(head)
        if found is not MISSING:
            return walk(found, path[1:])
        current = current.parent
    return MISSING


def lookup_at(frame: Frame, depth: int, path: Sequence[str]) -> Any:
    """Resolve a path in exactly one frame, ``depth`` levels out (``./``, ``../``)."""
    target = frame.up(depth)
    if target is None:
        return MISSING
    if not path:
        return target.value
    return walk(target.resolve_head(path[0]), path[1:])


def lookup_root(frame: Frame, path: Sequence[str]) -> Any:
    """Resolve a path from the root context (``@root``)."""
    return walk(frame.root.value, path)


def iterate(value: Any) -> list[tuple[Any, Any]]:
    """Materialize ``value`` into (key, element) pairs for an ``each`` block.

    Sequences yield (index, element), mappings (key, value). Other
    non-string iterables are materialized in iteration order. Absent and
    scalar values yield no elements.
    """
    kind = container_kind(value)
    if kind is ContainerKind.SEQUENCE:
        return list(enumerate(value))
    if kind is ContainerKind.MAPPING:
        return list(value.items())
    if kind is ContainerKind.OBJECT and hasattr(value, "__iter__"):
        return list(enumerate(value))
    return []


def truthy(value: Any) -> bool:
    """Template truthiness.

    Falsy: absent, None, False, numeric zero, the empty string and empty
    sequences. Everything else is truthy, including empty mappings.
    """
    if value is MISSING or value is None or value is False:
        return False
    if value is True:
        return True
    if isinstance(value, (int, float, complex)):
        return value != 0
    if isinstance(value, (str, bytes)):
        return len(value) > 0
    if isinstance(value, Mapping):
        return True
    if isinstance(value, (Sequence, Set)):
        return len(value) > 0
    return True
