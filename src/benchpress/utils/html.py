"""HTML escaping for benchpress output.

``{expr}`` output passes through :func:`html_escape`; ``{{expr}}`` does
not. Values that are already safe (a :class:`Markup` instance, or any
object with an ``__html__`` method) are emitted unchanged by both.
"""

from __future__ import annotations

import re
from typing import Any

_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    }
)

_TAG_RE = re.compile(r"<[^>]*>")


class Markup(str):
    """A string that is already safe for HTML output.

    Example:
        >>> html_escape(Markup("<b>ok</b>"))
        '<b>ok</b>'

    """

    __slots__ = ()

    def __new__(cls, value: Any = "") -> Markup:
        if hasattr(value, "__html__"):
            value = value.__html__()
        return super().__new__(cls, value)

    def __html__(self) -> Markup:
        return self

    def __add__(self, other: str) -> Markup:
        return Markup(str.__add__(self, html_escape(other)))

    def __radd__(self, other: str) -> Markup:
        return Markup(str.__add__(html_escape(other), self))

    def __repr__(self) -> str:
        return f"Markup({str.__repr__(self)})"

    @classmethod
    def escape(cls, value: Any) -> Markup:
        """Escape ``value`` and mark the result safe."""
        return cls(html_escape(value))


def html_escape(value: Any) -> str:
    """Escape ``&<>"'`` in ``str(value)`` unless the value is already safe."""
    if hasattr(value, "__html__"):
        return str(value.__html__())
    return str(value).translate(_ESCAPE_TABLE)


def strip_tags(value: Any) -> str:
    """Remove HTML tags from ``value``."""
    return _TAG_RE.sub("", str(value))
