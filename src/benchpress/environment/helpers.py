"""Built-in helpers registered on every Environment.

Call them from templates as ``{escape(value)}``, ``{join(tags, ", ")}``
or with the legacy ``{function.stripTags, body}`` spelling. Helpers
receive resolved values; a path that resolves nowhere arrives as None.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping, Sized
from typing import Any

from benchpress.utils.html import Markup, html_escape, strip_tags


def _text(value: Any) -> str:
    from benchpress.template.helpers import to_text

    return to_text(value)


def escape(value: Any) -> Markup:
    """HTML-escape a value; the result is not escaped again on output."""
    return Markup(html_escape(_text(value)))


def strip_tags_helper(value: Any) -> str:
    """Remove HTML tags."""
    return strip_tags(_text(value))


def stringify(value: Any) -> Markup:
    """JSON-encode a value, escaped for use inside an HTML attribute."""
    return Markup(html_escape(json.dumps(value, default=str, separators=(",", ":"))))


def join(value: Any, separator: str = ",") -> str:
    """Join the elements of a sequence (the values of a mapping)."""
    if value is None:
        return ""
    if isinstance(value, Mapping):
        value = value.values()
    if isinstance(value, str) or not isinstance(value, Iterable):
        return _text(value)
    return _text(separator).join(_text(item) for item in value)


def length(value: Any) -> int:
    """Number of elements (characters for strings); 0 when absent."""
    if isinstance(value, Sized):
        return len(value)
    return 0


DEFAULT_HELPERS: dict[str, Callable[..., Any]] = {
    "escape": escape,
    "stripTags": strip_tags_helper,
    "stringify": stringify,
    "join": join,
    "length": length,
}
