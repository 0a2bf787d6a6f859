"""benchpress RenderContext: per-render state kept out of the user's data.

Generated code reports the source line it is executing, and partial
inclusion tracks its depth and the chain of including templates. None of
that belongs in the context object the caller passed in, so it lives in a
ContextVar instead: each thread and each asyncio task sees its own value,
and overlapping renders on one Environment never observe each other.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field


@dataclass
class RenderContext:
    """Per-render diagnostic state.

    Attributes:
        template_name: Current template name for error messages
        source: Template source for runtime error snippets
        line: Current line number (updated during render by generated code)
        include_depth: Current partial nesting depth
        max_include_depth: Maximum allowed partial nesting depth
        template_stack: (template_name, line) pairs of the include chain
    """

    template_name: str | None = None
    source: str | None = None
    line: int = 0

    # Nesting of {{{ import }}} at render time
    include_depth: int = 0
    max_include_depth: int = 50

    template_stack: list[tuple[str, int]] = field(default_factory=list)

    def check_include_depth(self, partial_name: str) -> None:
        """Raise TemplateRuntimeError once another partial would be too deep."""
        if self.include_depth < self.max_include_depth:
            return
        from benchpress.environment.exceptions import ErrorCode, TemplateRuntimeError

        err = TemplateRuntimeError(
            f"partial '{partial_name}' would exceed the include depth "
            f"limit of {self.max_include_depth}",
            template_name=self.template_name,
            lineno=self.line or None,
            template_stack=self.template_stack,
            suggestion="Check for partials that import each other",
        )
        err.code = ErrorCode.INCLUDE_DEPTH
        raise err

    @contextmanager
    def entering(self, partial_name: str, source: str | None) -> Iterator[RenderContext]:
        """Make a nested context for ``partial_name`` current until exit.

        The caller's (template, line) pair is pushed onto the stack so a
        failure inside the partial reports where it was imported from.
        """
        stack = list(self.template_stack)
        if self.template_name and self.line:
            stack.append((self.template_name, self.line))
        nested = RenderContext(
            template_name=partial_name,
            source=source,
            include_depth=self.include_depth + 1,
            max_include_depth=self.max_include_depth,
            template_stack=stack,
        )
        token = _current.set(nested)
        try:
            yield nested
        finally:
            _current.reset(token)


_current: ContextVar[RenderContext | None] = ContextVar("benchpress_render", default=None)


def get_render_context() -> RenderContext | None:
    """The context of the render running in this thread or task, if any."""
    return _current.get()


def get_render_context_required() -> RenderContext:
    """Like get_render_context, for generated code that only runs inside a render."""
    ctx = _current.get()
    if ctx is None:
        raise RuntimeError("no benchpress render is active")
    return ctx


@contextmanager
def render_context(
    template_name: str | None = None,
    source: str | None = None,
    max_include_depth: int = 50,
) -> Iterator[RenderContext]:
    """Install a fresh top-level RenderContext for one ``Template.render`` call.

    Example:
        with render_context(template_name="page.tpl") as ctx:
            html = template._render_func(frame, helpers)
    """
    ctx = RenderContext(
        template_name=template_name,
        source=source,
        max_include_depth=max_include_depth,
    )
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)
