"""Helper registry for benchpress environment.

A flat name → callable mapping consulted at render time. Registration
validates the name and the callable and records its signature, so the
compiler can reject a call site with an impossible argument count before
any render happens.
"""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Callable, Iterator, Mapping
from typing import Any

logger = logging.getLogger(__name__)

# Same character class the expression grammar accepts for helper names
_HELPER_NAME_RE = re.compile(r"[A-Za-z0-9_\-:@]+")


class HelperRegistry(Mapping[str, Callable[..., Any]]):
    """Read-only mapping view over registered helpers, plus mutators.

    Supports:
        - env.helpers.register('name', func)
        - env.helpers['name'] = func
        - env.helpers.update({'name': func})
        - func = env.helpers['name']
        - 'name' in env.helpers

    All mutations use copy-on-write: a render that is iterating or looking
    up helpers always sees one consistent snapshot.
    """

    __slots__ = ("_helpers", "_signatures")

    def __init__(self, helpers: Mapping[str, Callable[..., Any]] | None = None):
        self._helpers: dict[str, Callable[..., Any]] = {}
        self._signatures: dict[str, inspect.Signature | None] = {}
        if helpers:
            self.update(helpers)

    @staticmethod
    def _signature_of(fn: Callable[..., Any]) -> inspect.Signature | None:
        try:
            return inspect.signature(fn)
        except (TypeError, ValueError):
            return None

    def register(self, name: str, fn: Callable[..., Any]) -> None:
        """Register ``fn`` under ``name``, replacing any previous helper.

        Raises:
            ValueError: ``name`` cannot be written in a template
            TypeError: ``fn`` is not callable
        """
        if not isinstance(name, str) or not _HELPER_NAME_RE.fullmatch(name):
            raise ValueError(f"invalid helper name {name!r}")
        if not callable(fn):
            raise TypeError(f"helper {name!r} must be callable, got {type(fn).__name__}")

        helpers = self._helpers.copy()
        signatures = self._signatures.copy()
        helpers[name] = fn
        signatures[name] = self._signature_of(fn)
        self._helpers, self._signatures = helpers, signatures
        logger.debug("registered helper %r", name)

    def unregister(self, name: str) -> None:
        """Remove a helper.

        Raises:
            KeyError: ``name`` is not registered
        """
        if name not in self._helpers:
            raise KeyError(name)
        helpers = self._helpers.copy()
        signatures = self._signatures.copy()
        del helpers[name]
        signatures.pop(name, None)
        self._helpers, self._signatures = helpers, signatures

    def lookup(self, name: str) -> Callable[..., Any] | None:
        """Return the helper or None."""
        return self._helpers.get(name)

    def signature(self, name: str) -> inspect.Signature | None:
        """Recorded signature of a registered helper, None if unknown."""
        return self._signatures.get(name)

    def update(self, mapping: Mapping[str, Callable[..., Any]]) -> None:
        """Batch register helpers."""
        for name, fn in mapping.items():
            self.register(name, fn)

    def __setitem__(self, name: str, fn: Callable[..., Any]) -> None:
        self.register(name, fn)

    def __delitem__(self, name: str) -> None:
        self.unregister(name)

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._helpers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)

    def __repr__(self) -> str:
        return f"<HelperRegistry {sorted(self._helpers)}>"
