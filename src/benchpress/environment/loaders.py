"""Where named templates and partials come from.

The Environment asks its loader for source text whenever a name is not
cached: on first ``compile(name)``, on a cache miss for a partial during
a render, and while walking the import graph for cycles. A loader is any
object with ``get_source(name) -> (source, filename)`` that raises
TemplateNotFoundError for unknown names; ``list_templates()`` is optional.

Loaders are called from worker threads (async compiles run in
``asyncio.to_thread``), so ``get_source`` must tolerate concurrent calls.

"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from difflib import get_close_matches
from pathlib import Path
from typing import Protocol

from benchpress.environment.exceptions import TemplateNotFoundError


class Loader(Protocol):
    def get_source(self, name: str) -> tuple[str, str | None]: ...


def _not_found(name: str, known: Iterable[str] = ()) -> TemplateNotFoundError:
    known = sorted(known)
    msg = f"Template '{name}' not found"
    close = get_close_matches(name, known, n=1, cutoff=0.6)
    if close:
        msg += f". Did you mean '{close[0]}'?"
    elif known:
        shown = ", ".join(known[:10])
        more = f" ... ({len(known)} total)" if len(known) > 10 else ""
        msg += f". Available: {shown}{more}"
    return TemplateNotFoundError(msg)


class FileSystemLoader:
    """Templates stored as files under one or more directories.

    Names are ``/``-separated paths relative to a search directory, with
    or without the template extension: ``{{{ import partials/header }}}``
    finds ``partials/header.tpl``. Directories are tried in order and the
    first hit wins, so a theme directory listed first overrides a default
    one listed after it.

    Example:
        >>> loader = FileSystemLoader(["themes/custom", "themes/default"])
        >>> source, filename = loader.get_source("partials/header")

    A name that resolves outside its search directory (``../secret``) is
    reported as not found.
    """

    __slots__ = ("_encoding", "_extension", "_roots")

    def __init__(
        self,
        paths: str | Path | list[str | Path],
        encoding: str = "utf-8",
        extension: str = ".tpl",
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._roots = [Path(p) for p in paths]
        self._encoding = encoding
        self._extension = extension

    def _filenames(self, name: str) -> tuple[str, ...]:
        ext = self._extension
        return (name,) if not ext or name.endswith(ext) else (name, name + ext)

    def get_source(self, name: str) -> tuple[str, str]:
        for root in self._roots:
            resolved_root = root.resolve()
            for filename in self._filenames(name):
                path = (root / filename).resolve()
                if not path.is_relative_to(resolved_root):
                    raise TemplateNotFoundError(
                        f"Template '{name}' resolves outside of search path {root}"
                    )
                if path.is_file():
                    return path.read_text(self._encoding), str(path)

        searched = ", ".join(str(root) for root in self._roots)
        raise TemplateNotFoundError(f"Template '{name}' not found in: {searched}")

    def list_templates(self) -> list[str]:
        """Template names (extension stripped) found under every search directory."""
        ext = self._extension
        names: set[str] = set()
        for root in self._roots:
            if not root.is_dir():
                continue
            for path in root.rglob(f"*{ext}" if ext else "*"):
                if path.is_file():
                    rel = path.relative_to(root).as_posix()
                    names.add(rel[: -len(ext)] if ext else rel)
        return sorted(names)


class DictLoader:
    """Templates held in memory, keyed by name.

    The Environment keeps one of these in front of the user's loader for
    every source handed to ``compile(name, source)``, so an evicted entry
    recompiles from exactly the text it was first compiled from. Updates
    replace the whole mapping, which keeps concurrent readers consistent
    without a lock.

    Example:
        >>> env = Environment(loader=DictLoader({"hello": "Hello {name}!"}))
        >>> env.get_template("hello").render({"name": "Ada"})
        'Hello Ada!'
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: Mapping[str, str] | None = None):
        self._mapping: dict[str, str] = dict(mapping or {})

    def get_source(self, name: str) -> tuple[str, None]:
        try:
            return self._mapping[name], None
        except KeyError:
            raise _not_found(name, self._mapping) from None

    def set_source(self, name: str, source: str) -> None:
        self._mapping = {**self._mapping, name: source}

    def remove(self, name: str) -> None:
        if name in self._mapping:
            self._mapping = {k: v for k, v in self._mapping.items() if k != name}

    def __contains__(self, name: object) -> bool:
        return name in self._mapping

    def list_templates(self) -> list[str]:
        return sorted(self._mapping)


class ChoiceLoader:
    """Ask several loaders in turn; the first that knows the name answers.

    Example:
        >>> overrides = DictLoader({"nav": "<nav>Custom</nav>"})
        >>> loader = ChoiceLoader([overrides, FileSystemLoader("templates")])
    """

    __slots__ = ("_loaders",)

    def __init__(self, loaders: list[Loader]):
        self._loaders = loaders

    def get_source(self, name: str) -> tuple[str, str | None]:
        for loader in self._loaders:
            try:
                return loader.get_source(name)
            except TemplateNotFoundError:
                pass
        raise TemplateNotFoundError(
            f"Template '{name}' not found in any of {len(self._loaders)} loaders"
        )

    def list_templates(self) -> list[str]:
        names: set[str] = set()
        for loader in self._loaders:
            list_templates = getattr(loader, "list_templates", None)
            if list_templates is not None:
                names.update(list_templates())
        return sorted(names)


class FunctionLoader:
    """Adapt a ``name -> source`` callable.

    The callable returns the source text, a ``(source, filename)`` pair,
    or None for an unknown name.

    Example:
        >>> env = Environment(loader=FunctionLoader(db_templates.get))
    """

    __slots__ = ("_load",)

    def __init__(self, load: Callable[[str], str | tuple[str, str | None] | None]):
        self._load = load

    def get_source(self, name: str) -> tuple[str, str | None]:
        result = self._load(name)
        if result is None:
            raise _not_found(name)
        if isinstance(result, str):
            return result, "<function>"
        return result

    def list_templates(self) -> list[str]:
        return []
