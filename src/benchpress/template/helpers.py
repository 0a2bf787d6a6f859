"""Pure runtime helper functions injected into the template namespace.

These functions are called by compiled template code at render time.
None of them close over Environment state; partial inclusion, which does,
is bound per Template in :mod:`benchpress.template.core`.

Thread-Safety:
All functions are stateless and safe for concurrent use.

"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from benchpress.render_context import get_render_context, get_render_context_required
from benchpress.template.scope import (
    MISSING,
    iterate,
    lookup,
    lookup_at,
    lookup_root,
    loop_frame,
    truthy,
)
from benchpress.utils.html import html_escape


def to_text(value: Any) -> str:
    """Convert a context value to output text.

    Missing values and None render empty, booleans render as ``true`` /
    ``false`` and lists and tuples render comma-joined.
    """
    if value is MISSING or value is None:
        return ""
    if isinstance(value, str):
        return value
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    return str(value)


def escape(value: Any) -> str:
    """HTML-escape a value for ``{expr}`` output; safe values pass through."""
    if hasattr(value, "__html__"):
        return str(value.__html__())
    return html_escape(to_text(value))


def call_helper(helpers: Mapping[str, Any], name: str, *args: Any) -> Any:
    """Invoke a helper by name with already-resolved arguments.

    Raises:
        HelperNotFoundError: ``name`` is not in ``helpers``
        TemplateRuntimeError: The helper raised
    """
    from benchpress.environment.exceptions import (
        ErrorCode,
        HelperNotFoundError,
        TemplateError,
        TemplateRuntimeError,
    )

    render_ctx = get_render_context()
    template_name = render_ctx.template_name if render_ctx else None
    lineno = (render_ctx.line or None) if render_ctx else None
    stack = render_ctx.template_stack if render_ctx else None

    try:
        fn = helpers[name]
    except KeyError:
        raise HelperNotFoundError(
            name,
            available=sorted(helpers),
            template_name=template_name,
            lineno=lineno,
            template_stack=stack,
        ) from None

    args = tuple(None if arg is MISSING else arg for arg in args)
    try:
        return fn(*args)
    except TemplateError:
        raise
    except Exception as e:
        err = TemplateRuntimeError(
            f"helper '{name}' raised {type(e).__name__}: {e}",
            template_name=template_name,
            lineno=lineno,
            template_stack=stack,
        )
        err.code = ErrorCode.HELPER_ERROR
        raise err from e


# =============================================================================
# Shared Base Namespace
# =============================================================================
# Static entries shared across all Template instances. Copied once per
# Template.__init__ instead of constructed fresh each time.
#
# Thread-Safety: This dict is read-only after module load.
# =============================================================================

STATIC_NAMESPACE: dict[str, Any] = {
    "__builtins__": {},
    "_len": len,
    "_enumerate": enumerate,
    "_lookup": lookup,
    "_lookup_at": lookup_at,
    "_lookup_root": lookup_root,
    "_truthy": truthy,
    "_iterate": iterate,
    "_loop_frame": loop_frame,
    "_escape": escape,
    "_to_text": to_text,
    "_call_helper": call_helper,
    "_get_render_ctx": get_render_context_required,
}
