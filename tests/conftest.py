"""Pytest configuration and fixtures for benchpress tests."""

import pytest

from benchpress import DictLoader, Environment


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def env():
    """Create a basic benchpress Environment."""
    return Environment()


@pytest.fixture
def env_trim():
    """Create an Environment with trim_blocks enabled."""
    return Environment(trim_blocks=True)


@pytest.fixture
def env_lenient():
    """Create an Environment that passes unknown directives through as text."""
    return Environment(strict=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def env_with_loader():
    """Create an Environment with DictLoader and test templates."""
    loader = DictLoader(
        {
            "page": "<main>{{{ import header }}}<p>{body}</p>{{{ import footer }}}</main>",
            "header": "<h1>{title}</h1>",
            "footer": "<footer>{@root.site}</footer>",
            "card": "<div>{name}</div>",
            "list": "{{{ each people }}}{{{ import card }}}{{{ end }}}",
            "profile": "{{{ import card with user }}}",
            "missing-partial": "a{{{ import nowhere }}}b",
        }
    )
    return Environment(loader=loader)


def render(env: Environment, source: str, context=None, **kwargs) -> str:
    """Compile ``source`` without caching and render it."""
    return env.from_string(source).render(context, **kwargs)
