"""Host view-engine shim.

Web frameworks with a pluggable view layer call the engine as
``engine(filepath, options, callback)`` and expect ``callback(error, html)``
exactly once. :func:`view_engine` adapts an Environment to that calling
convention: the file is read, compiled under its path (cached, so a
changed file replaces the entry by fingerprint) and rendered with
``options`` as the context.

Example:
    >>> engine = view_engine(Environment())
    >>> engine("views/home.tpl", {"title": "Home"}, lambda err, html: print(html))

"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from benchpress.environment.exceptions import TemplateError, TemplateNotFoundError

if TYPE_CHECKING:
    from benchpress.environment import Environment

ViewCallback = Callable[[Exception | None, str | None], Any]
ViewEngine = Callable[[str, Mapping[str, Any] | None, ViewCallback], None]

# Option keys the host framework adds for its own use; never template data
_HOST_OPTIONS = frozenset({"settings", "cache", "_locals"})


def view_engine(env: Environment, *, encoding: str = "utf-8") -> ViewEngine:
    """Return a ``(filepath, options, callback)`` renderer bound to ``env``."""

    def render_file(
        filepath: str,
        options: Mapping[str, Any] | None,
        callback: ViewCallback,
    ) -> None:
        context = {k: v for k, v in (options or {}).items() if k not in _HOST_OPTIONS}
        try:
            try:
                source = Path(filepath).read_text(encoding)
            except FileNotFoundError:
                raise TemplateNotFoundError(f"Template '{filepath}' not found") from None
            html = env.get_template(filepath, source).render(context)
        except (TemplateError, OSError) as e:
            callback(e, None)
            return
        callback(None, html)

    return render_file
