"""benchpress Environment: compiled-template registry and render dispatcher.

The Environment owns everything shared between renders: the loader, the
helper registry and the LRU cache of compiled templates. Compiled
templates are immutable, so many renders may run against one Environment
at once; the only shared mutable state is the cache and the table of
in-flight compiles.

Single-flight:
    The first caller to ask for an uncached name becomes the leader and
    compiles it (in a worker thread for async callers). Callers arriving
    while that compile runs join the leader's ``concurrent.futures.Future``
    instead of compiling again: async callers through
    ``asyncio.wrap_future``, sync callers (partials fetched during a
    render) through ``Future.result()``.

Example:
    >>> env = Environment(loader=DictLoader({"hello": "Hello {name}!"}))
    >>> await env.render("hello", {"name": "Ada"})
    'Hello Ada!'

"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

from benchpress.analysis import collect_partials
from benchpress.compiler import Compiler
from benchpress.environment.exceptions import (
    PartialNotFoundError,
    TemplateError,
    TemplateNotFoundError,
)
from benchpress.environment.helpers import DEFAULT_HELPERS
from benchpress.environment.loaders import ChoiceLoader, DictLoader, Loader
from benchpress.environment.registry import HelperRegistry
from benchpress.lexer import tokenize
from benchpress.parser import Parser
from benchpress.render_context import get_render_context
from benchpress.template import Template
from benchpress.utils.lru_cache import LRUCache

if TYPE_CHECKING:
    from benchpress.nodes import Root

logger = logging.getLogger(__name__)


def fingerprint(source: str) -> str:
    """SHA-256 hex digest identifying a template source."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


class Environment:
    """Central configuration, template cache and render entry point.

    Args:
        loader: Where named templates come from when no source is given
        helpers: Extra helpers registered on top of the built-ins
        cache_size: Maximum compiled templates kept (LRU); 0 disables caching
        cache_ttl: Seconds a compiled template stays cached; None never expires
        strict: Unknown ``{{{ name }}}`` directives are parse errors; when
            False they render as literal text
        trim_blocks: Remove the newline directly after a block marker
        max_include_depth: Nesting limit for partials at render time
        clock: Monotonic time source for cache expiry

    Thread-Safety:
        Rendering and compiling are safe from any number of threads and
        tasks. Helper registration is expected to finish before concurrent
        rendering starts.

    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        helpers: Mapping[str, Callable[..., Any]] | None = None,
        cache_size: int = 400,
        cache_ttl: float | None = None,
        strict: bool = True,
        trim_blocks: bool = False,
        max_include_depth: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader
        # Sources handed to compile(name, source) shadow the user loader so
        # an evicted template recompiles from identical text
        self._sources = DictLoader()
        self._loader: Loader = (
            ChoiceLoader([self._sources, loader]) if loader is not None else self._sources
        )

        self.helpers = HelperRegistry(DEFAULT_HELPERS)
        if helpers:
            self.helpers.update(helpers)

        self.strict = strict
        self.trim_blocks = trim_blocks
        self.max_include_depth = max_include_depth

        self._cache: LRUCache[str, Template] = LRUCache(cache_size, cache_ttl, clock=clock)
        self._inflight: dict[str, Future[Template]] = {}
        self._inflight_lock = threading.Lock()
        # Serializes import-cycle checks with cache writes, across all names
        self._graph_lock = threading.Lock()
        self._compiles = 0

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def _parse(self, name: str | None, source: str) -> Root:
        with self._inflight_lock:
            self._compiles += 1
        logger.debug("compiling template %r", name)
        tokens = tokenize(source, name=name, trim_blocks=self.trim_blocks)
        return Parser(tokens, name=name, source=source, strict=self.strict).parse()

    def _generate(
        self, name: str | None, source: str, root: Root, filename: str | None = None
    ) -> Template:
        compiler = Compiler(self)
        code = compiler.compile(root, name=name, filename=filename)
        return Template(
            self,
            code,
            name,
            fingerprint=fingerprint(source),
            partials=collect_partials(root),
            filename=filename,
            source=source,
            module=compiler.module,
        )

    def _build(self, name: str | None, source: str, filename: str | None = None) -> Template:
        """Lex, parse and compile one source. Never touches the cache."""
        root = self._parse(name, source)
        with self._graph_lock:
            return self._generate(name, source, root, filename)

    def _compile_and_store(self, name: str, source: str | None) -> Template:
        """Compile ``name`` and cache it. Runs in the single-flight leader.

        The import-cycle check reads the partials of every cached template,
        so checking and caching happen under ``_graph_lock`` as one step:
        of two templates that import each other, whichever compiles second
        sees the first and is rejected.
        """
        retain = source is not None
        filename = None
        if source is None:
            source, filename = self._loader.get_source(name)
        root = self._parse(name, source)
        with self._graph_lock:
            template = self._generate(name, source, root, filename)
            if retain:
                # Only retained once it compiled; a failed compile leaves no trace
                self._sources.set_source(name, source)
            self._cache.set(name, template)
        return template

    def _lookup_cached(self, name: str, source: str | None) -> Template | None:
        cached = self._cache.get(name)
        if cached is None:
            return None
        if source is not None and cached.fingerprint != fingerprint(source):
            logger.debug("fingerprint changed for %r; recompiling", name)
            return None
        return cached

    def _claim(self, name: str) -> tuple[Future[Template], bool]:
        """Return the in-flight future for ``name`` and whether we lead it."""
        with self._inflight_lock:
            future = self._inflight.get(name)
            if future is not None:
                logger.debug("joining in-flight compile of %r", name)
                return future, False
            future = Future()
            self._inflight[name] = future
            return future, True

    def _release(self, name: str, future: Future[Template]) -> None:
        with self._inflight_lock:
            if self._inflight.get(name) is future:
                del self._inflight[name]

    def _peek_cached(self, name: str, source: str | None) -> Template | None:
        """Like _lookup_cached, without touching recency or counters."""
        if name not in self._cache:
            return None
        entry = self._cache.entry(name)
        if entry is None:
            return None
        if source is not None and entry.value.fingerprint != fingerprint(source):
            return None
        return entry.value

    def _lead(self, name: str, future: Future[Template], source: str | None) -> Template:
        try:
            # A previous leader may have stored the entry after our cache miss
            template = self._peek_cached(name, source) or self._compile_and_store(name, source)
        except BaseException as e:
            self._release(name, future)
            future.set_exception(e)
            raise
        self._release(name, future)
        future.set_result(template)
        return template

    async def compile(self, name: str, source: str | None = None) -> Template:
        """Compile-or-fetch a template by name.

        Args:
            name: Template name (cache key)
            source: Template text; None loads it through the loader. A
                source whose fingerprint differs from the cached entry
                replaces that entry.

        Returns:
            The compiled Template

        Raises:
            TemplateNotFoundError: No source given and the loader has none
            TemplateSyntaxError: Unterminated marker
            ParseError: Structural error
            CompileError: Cyclic partial import or helper arity mismatch
        """
        while True:
            cached = self._lookup_cached(name, source)
            if cached is not None:
                return cached

            future, leader = self._claim(name)
            if leader:
                return await asyncio.to_thread(self._lead, name, future, source)

            template = await asyncio.wrap_future(future)
            if source is None or template.fingerprint == fingerprint(source):
                return template

    def get_template(self, name: str, source: str | None = None) -> Template:
        """Synchronous compile-or-fetch with the same single-flight rules."""
        while True:
            cached = self._lookup_cached(name, source)
            if cached is not None:
                return cached

            future, leader = self._claim(name)
            if leader:
                return self._lead(name, future, source)

            template = future.result()
            if source is None or template.fingerprint == fingerprint(source):
                return template

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Compile a template without caching it."""
        return self._build(name, source)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render(
        self,
        name_or_template: str | Template,
        context: Any = None,
        helpers: Mapping[str, Callable[..., Any]] | None = None,
        *,
        source: str | None = None,
    ) -> str:
        """Render a template by name (compiling on first use) or a Template.

        Partials reachable from the template are compiled before the
        synchronous render starts, so the render itself never waits on a
        compile.
        """
        if isinstance(name_or_template, Template):
            template = name_or_template
        else:
            template = await self.compile(name_or_template, source)
        await self._warm_partials(template)
        return template.render(context, helpers)

    async def _warm_partials(self, template: Template) -> None:
        seen: set[str] = set()
        pending = list(template.partials)
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            try:
                partial = await self.compile(name)
            except TemplateNotFoundError:
                # Reported as PartialNotFoundError if the render reaches it
                continue
            pending.extend(partial.partials)

    def _get_partial(self, name: str) -> Template:
        """Fetch a partial during a render."""
        try:
            return self.get_template(name)
        except TemplateNotFoundError:
            render_ctx = get_render_context()
            raise PartialNotFoundError(
                name,
                template_name=render_ctx.template_name if render_ctx else None,
                lineno=(render_ctx.line or None) if render_ctx else None,
                template_stack=render_ctx.template_stack if render_ctx else None,
            ) from None

    def _partial_references(self, name: str) -> frozenset[str] | None:
        """Partials imported by ``name``, for import-graph cycle detection.

        Uses the cached template when present, otherwise parses (without
        compiling) the loader's source. None when the template cannot be
        found or does not parse; such a partial is a leaf of the graph.
        """
        cached = self._cache.entry(name)
        if cached is not None:
            return cached.value.partials
        try:
            source, _ = self._loader.get_source(name)
            tokens = tokenize(source, name=name, trim_blocks=self.trim_blocks)
            root = Parser(tokens, name=name, source=source, strict=self.strict).parse()
        except TemplateError:
            return None
        return collect_partials(root)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def invalidate(self, name: str) -> None:
        """Forget the compiled template and any retained source for ``name``."""
        self._cache.pop(name)
        self._sources.remove(name)

    def clear_cache(self) -> None:
        """Drop every compiled template. Retained sources are kept."""
        self._cache.clear()

    def cache_info(self) -> dict[str, int]:
        """Cache statistics.

        Returns:
            hits, misses, evictions, size, maxsize and compiles (number of
            lex/parse/compile runs performed)
        """
        info = self._cache.info()
        info["compiles"] = self._compiles
        return info

    def list_templates(self) -> list[str]:
        """Names available from retained sources and the loader."""
        return self._loader.list_templates()  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Precompilation
    # ------------------------------------------------------------------

    def precompile(self, name: str, source: str | None = None) -> str:
        """Compile a template and serialize it to self-contained Python source."""
        from benchpress.precompile import dump

        return dump(self.get_template(name, source))

    def load_precompiled(self, text: str) -> Template:
        """Load a precompiled template without lexing or parsing, and cache it."""
        from benchpress.precompile import load

        template = load(self, text)
        name = template.name
        if name is not None:
            existing = self._cache.entry(name)
            if existing is not None and existing.value.fingerprint != template.fingerprint:
                logger.warning(
                    "precompiled %r replaces cached template with a different fingerprint", name
                )
            with self._graph_lock:
                self._cache.set(name, template)
        return template

    def __repr__(self) -> str:
        return f"<Environment loader={self.loader!r} cached={len(self._cache)}>"
