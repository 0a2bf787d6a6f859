"""Tests for the Environment: compile cache, single-flight and invalidation."""

from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from benchpress import DictLoader, Environment, FunctionLoader, ParseError, Template
from benchpress.environment.exceptions import (
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from benchpress.environment.core import fingerprint


class CountingLoader:
    """DictLoader wrapper that counts and optionally slows source loads."""

    def __init__(self, mapping: dict[str, str], delay: float = 0.0):
        self._inner = DictLoader(mapping)
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def get_source(self, name: str):
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return self._inner.get_source(name)

    def list_templates(self):
        return self._inner.list_templates()


class TestCompile:
    @pytest.mark.asyncio
    async def test_compile_with_source(self, env):
        template = await env.compile("greet", "Hello {name}!")
        assert isinstance(template, Template)
        assert template.name == "greet"
        assert template.fingerprint == fingerprint("Hello {name}!")
        assert template.render({"name": "Ada"}) == "Hello Ada!"

    @pytest.mark.asyncio
    async def test_compile_is_cached(self, env):
        first = await env.compile("greet", "Hello")
        second = await env.compile("greet", "Hello")
        third = await env.compile("greet")
        assert first is second is third
        assert env.cache_info()["compiles"] == 1

    @pytest.mark.asyncio
    async def test_changed_source_replaces_entry(self, env):
        old = await env.compile("greet", "one")
        new = await env.compile("greet", "two")
        assert old is not new
        assert old.fingerprint != new.fingerprint
        assert (await env.compile("greet")).render() == "two"
        # The replaced template object still works
        assert old.render() == "one"

    @pytest.mark.asyncio
    async def test_compile_from_loader(self):
        env = Environment(loader=DictLoader({"a": "A{x}"}))
        template = await env.compile("a")
        assert template.render({"x": 1}) == "A1"

    @pytest.mark.asyncio
    async def test_unknown_name(self, env):
        with pytest.raises(TemplateNotFoundError):
            await env.compile("nope")

    @pytest.mark.asyncio
    async def test_failed_compile_leaves_no_entry(self, env):
        with pytest.raises(TemplateSyntaxError):
            await env.compile("bad", "{{{ if x")
        assert env.cache_info()["size"] == 0
        with pytest.raises(TemplateNotFoundError):
            await env.compile("bad")

    @pytest.mark.asyncio
    async def test_failed_recompile_keeps_previous(self, env):
        good = await env.compile("page", "ok")
        with pytest.raises(ParseError):
            await env.compile("page", "{{{ end }}}")
        assert await env.compile("page") is good

    def test_get_template_sync(self):
        env = Environment(loader=DictLoader({"a": "{x}"}))
        assert env.get_template("a") is env.get_template("a")
        assert env.cache_info()["compiles"] == 1

    def test_from_string_not_cached(self, env):
        env.from_string("x", name="inline")
        assert env.cache_info()["size"] == 0


class TestRender:
    @pytest.mark.asyncio
    async def test_render_by_name(self):
        env = Environment(loader=DictLoader({"hello": "Hello {name}!"}))
        assert await env.render("hello", {"name": "World"}) == "Hello World!"

    @pytest.mark.asyncio
    async def test_render_with_source(self, env):
        assert await env.render("x", {"v": 1}, source="v={v}") == "v=1"

    @pytest.mark.asyncio
    async def test_render_template_object(self, env):
        template = env.from_string("{a}")
        assert await env.render(template, {"a": "b"}) == "b"

    @pytest.mark.asyncio
    async def test_render_helpers(self, env):
        result = await env.render("x", {"v": "a"}, {"twice": lambda v: v * 2}, source="{twice(v)}")
        assert result == "aa"

    @pytest.mark.asyncio
    async def test_concurrent_renders_isolated(self, env):
        await env.compile("item", "{{{ each xs }}}{@value}{{{ end }}}-{name}")

        async def one(n: int) -> str:
            return await env.render("item", {"xs": list(range(n)), "name": n})

        results = await asyncio.gather(*(one(n) for n in range(20)))
        assert results == ["".join(map(str, range(n))) + f"-{n}" for n in range(20)]


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_async_compiles_share_one(self):
        loader = CountingLoader({"slow": "Hi {name}"}, delay=0.05)
        env = Environment(loader=loader)

        results = await asyncio.gather(*(env.render("slow", {"name": i}) for i in range(25)))

        assert results == [f"Hi {i}" for i in range(25)]
        assert env.cache_info()["compiles"] == 1
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_compiles_return_same_object(self):
        env = Environment(loader=CountingLoader({"t": "x"}, delay=0.02))
        templates = await asyncio.gather(*(env.compile("t") for _ in range(10)))
        assert all(t is templates[0] for t in templates)

    def test_threads_share_one_compile(self):
        loader = CountingLoader({"t": "{{{ each xs }}}{@value}{{{ end }}}"}, delay=0.05)
        env = Environment(loader=loader)

        with ThreadPoolExecutor(max_workers=8) as pool:
            templates = list(pool.map(lambda _: env.get_template("t"), range(16)))

        assert len({id(t) for t in templates}) == 1
        assert env.cache_info()["compiles"] == 1

    @pytest.mark.asyncio
    async def test_failure_propagates_to_all_waiters(self):
        env = Environment(loader=CountingLoader({"bad": "{{{ if x }}}"}, delay=0.02))
        results = await asyncio.gather(
            *(env.compile("bad") for _ in range(5)), return_exceptions=True
        )
        assert all(isinstance(r, ParseError) for r in results)
        assert env.cache_info()["size"] == 0

    @pytest.mark.asyncio
    async def test_next_compile_after_failure_retries(self):
        sources = {"t": "{{{ end }}}"}
        env = Environment(loader=FunctionLoader(sources.get))
        with pytest.raises(ParseError):
            await env.compile("t")
        sources["t"] = "fixed"
        assert (await env.compile("t")).render() == "fixed"


class TestEviction:
    @pytest.mark.asyncio
    async def test_evicted_template_recompiles_identically(self):
        env = Environment(cache_size=1)
        first = await env.compile("a", "{{{ if x }}}{x}{{{ end }}}!")
        await env.compile("b", "other")
        assert env.cache_info()["evictions"] == 1

        again = await env.compile("a")
        assert again is not first
        assert again.to_source() == first.to_source()
        assert again.fingerprint == first.fingerprint
        assert again.render({"x": "y"}) == first.render({"x": "y"}) == "y!"

    @pytest.mark.asyncio
    async def test_ttl_expiry_recompiles(self, clock):
        env = Environment(cache_ttl=10, clock=clock)
        first = await env.compile("a", "A")
        clock.advance(11)
        second = await env.compile("a")
        assert first is not second
        assert env.cache_info()["compiles"] == 2

    def test_cache_disabled(self):
        env = Environment(loader=DictLoader({"a": "A"}), cache_size=0)
        env.get_template("a")
        env.get_template("a")
        assert env.cache_info()["compiles"] == 2


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_invalidate_forgets_source(self, env):
        await env.compile("a", "A")
        env.invalidate("a")
        with pytest.raises(TemplateNotFoundError):
            await env.compile("a")

    @pytest.mark.asyncio
    async def test_invalidate_reloads_from_loader(self):
        mapping = {"a": "one"}
        env = Environment(loader=FunctionLoader(mapping.get))
        assert await env.render("a") == "one"
        mapping["a"] = "two"
        assert await env.render("a") == "one"
        env.invalidate("a")
        assert await env.render("a") == "two"

    @pytest.mark.asyncio
    async def test_clear_cache_keeps_sources(self, env):
        await env.compile("a", "A")
        env.clear_cache()
        assert env.cache_info()["size"] == 0
        assert (await env.compile("a")).render() == "A"

    @pytest.mark.asyncio
    async def test_cache_info(self, env):
        await env.compile("a", "A")
        await env.compile("a")
        info = env.cache_info()
        assert info["compiles"] == 1
        assert info["size"] == 1
        assert info["hits"] >= 1
        assert set(info) >= {"hits", "misses", "compiles", "evictions", "size"}

    @pytest.mark.asyncio
    async def test_list_templates(self):
        env = Environment(loader=DictLoader({"x": "", "y": ""}))
        await env.compile("inline", "z")
        assert env.list_templates() == ["inline", "x", "y"]

    def test_repr(self, env):
        assert "Environment" in repr(env)
