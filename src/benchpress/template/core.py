"""benchpress Template: compiled template object ready for rendering.

The Template class wraps a compiled code object and provides the
``render()`` API. It is the compiled artifact the Environment caches:
immutable, identified by name plus the SHA-256 fingerprint of its source,
and safe to render from many threads at once.

Architecture:
    ```
    Template
    ├── _env_ref: WeakRef[Environment]  # Prevents circular refs
    ├── _code: code object              # Compiled Python bytecode
    ├── _render_func: callable          # Extracted render() function
    ├── _module: ast.Module             # Generated AST (to_source, precompile)
    └── _name, _fingerprint, _partials  # Identity and import references
    ```

StringBuilder Pattern:
Generated code uses ``buf.append()`` + ``''.join(buf)``:
    ```python
    def render(_frame, _helpers):
        buf = []
        _append = buf.append
        _append('Hello, ')
        _append(_escape(_lookup(_frame, ('name',))))
        return ''.join(buf)
    ```

Memory Safety:
Uses ``weakref.ref(env)`` to break potential cycles:
``Template → (weak) → Environment → cache → Template``

"""

from __future__ import annotations

import ast
import time
import weakref
from collections import ChainMap
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from benchpress.template.helpers import STATIC_NAMESPACE
from benchpress.template.scope import Frame

if TYPE_CHECKING:
    import types

    from benchpress.environment import Environment
    from benchpress.render_context import RenderContext


class Template:
    """Compiled template ready for rendering.

    Attributes:
        name: Template identifier
        fingerprint: SHA-256 hex digest of the source text
        compiled_at: Wall-clock time the code was generated
        partials: Names of the partials this template imports

    Error Enhancement:
        Unexpected exceptions during render are wrapped with template
        context:
            ```
            Runtime Error: 'NoneType' object is not callable
              Location: post.tpl:15
            ```

    Example:
            >>> env = Environment()
            >>> t = env.from_string("Hello, {name}!")
            >>> t.render({"name": "World"})
            'Hello, World!'

    """

    __slots__ = (
        "_code",
        "_compiled_at",
        "_env_ref",
        "_filename",
        "_fingerprint",
        "_module",
        "_name",
        "_partials",
        "_render_func",
        "_source",
    )

    def __init__(
        self,
        env: Environment,
        code: types.CodeType,
        name: str | None,
        *,
        fingerprint: str,
        partials: frozenset[str] = frozenset(),
        filename: str | None = None,
        source: str | None = None,
        module: ast.Module | None = None,
        compiled_at: float | None = None,
    ):
        """Initialize template with compiled code.

        Args:
            env: Parent Environment (stored as weak reference)
            code: Compiled Python code object defining ``render``
            name: Template name (for error messages)
            fingerprint: SHA-256 hex digest of the source
            partials: Partial names referenced by the template
            filename: Source filename (for error messages)
            source: Template source for runtime error snippets
            module: Generated Python AST, kept for ``to_source()``
            compiled_at: When the code was generated (defaults to now)
        """
        self._env_ref: weakref.ref[Environment] = weakref.ref(env)
        self._code = code
        self._name = name
        self._filename = filename
        self._fingerprint = fingerprint
        self._partials = frozenset(partials)
        self._source = source
        self._module = module
        self._compiled_at = compiled_at if compiled_at is not None else time.time()

        env_ref = self._env_ref

        # Include helper: fetch (compiling if needed) and render a partial
        def _include(
            template_name: str,
            frame: Frame,
            helpers: Mapping[str, Any],
            *narrowed: Any,
        ) -> str:
            from benchpress.render_context import get_render_context_required

            render_ctx = get_render_context_required()
            render_ctx.check_include_depth(template_name)

            _env = env_ref()
            if _env is None:
                raise RuntimeError(
                    f"Environment has been garbage collected while including '{template_name}'"
                )
            included = _env._get_partial(template_name)

            # ``with path`` makes the resolved value the partial's root scope
            if narrowed:
                frame = Frame(narrowed[0])

            with render_ctx.entering(template_name, included._source):
                result: str = included._render_func(frame, helpers)
            return result

        namespace: dict[str, Any] = STATIC_NAMESPACE.copy()
        namespace["_include"] = _include

        exec(code, namespace)
        self._render_func = namespace["render"]

    @property
    def _env(self) -> Environment:
        """Get the Environment (dereferences weak reference)."""
        env = self._env_ref()
        if env is None:
            raise RuntimeError(
                f"Environment has been garbage collected (template: {self._name or 'unknown'})"
            )
        return env

    @property
    def name(self) -> str | None:
        """Template name."""
        return self._name

    @property
    def filename(self) -> str | None:
        """Source filename."""
        return self._filename

    @property
    def fingerprint(self) -> str:
        """SHA-256 hex digest of the source this template was compiled from."""
        return self._fingerprint

    @property
    def compiled_at(self) -> float:
        return self._compiled_at

    @property
    def partials(self) -> frozenset[str]:
        """Names of partials imported by this template."""
        return self._partials

    @property
    def source(self) -> str | None:
        return self._source

    def render(
        self,
        context: Any = None,
        helpers: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> str:
        """Render the template.

        Args:
            context: Root context: any nested mapping / sequence / object /
                scalar structure. None means an empty mapping.
            helpers: Helpers for this render; they shadow the Environment's
                registered helpers by name. Call sites were arity-checked
                against the registered helper at compile time, so an
                override must accept the same argument counts. A name that
                is only supplied here is not checked.
            **kwargs: Extra top-level context entries (mapping contexts only)

        Returns:
            Rendered template as string

        Example:
            >>> t.render({"name": "World"})
            'Hello, World!'
            >>> t.render(name="World")
            'Hello, World!'
        """
        from benchpress.environment.exceptions import TemplateError
        from benchpress.render_context import render_context

        if context is None:
            context = {}
        if kwargs:
            if not isinstance(context, Mapping):
                raise TypeError("keyword context requires a mapping context")
            context = {**context, **kwargs}

        env = self._env
        helper_map: Mapping[str, Any] = (
            ChainMap(dict(helpers), env.helpers) if helpers else env.helpers  # type: ignore[arg-type]
        )

        with render_context(
            template_name=self._name,
            source=self._source,
            max_include_depth=env.max_include_depth,
        ) as render_ctx:
            try:
                result: str = self._render_func(Frame(context), helper_map)
                return result
            except TemplateError:
                raise
            except Exception as e:
                raise self._enhance_error(e, render_ctx) from e

    def _enhance_error(self, error: Exception, render_ctx: RenderContext) -> Exception:
        """Convert a generic exception into TemplateRuntimeError with location."""
        from benchpress.environment.exceptions import TemplateRuntimeError

        error_str = str(error).strip() or f"{type(error).__name__} (no details available)"
        return TemplateRuntimeError(
            f"{type(error).__name__}: {error_str}",
            template_name=render_ctx.template_name,
            lineno=render_ctx.line or None,
            template_stack=render_ctx.template_stack,
        )

    def to_source(self) -> str:
        """Python source of the generated module."""
        if self._module is None:
            raise ValueError(f"Template '{self._name}' has no generated module")
        return ast.unparse(self._module)

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'} {self._fingerprint[:12]}>"
