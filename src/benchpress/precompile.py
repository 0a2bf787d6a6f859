"""Serialize compiled templates to Python source and load them back.

A precompiled template is a plain Python module: a few metadata constants
followed by the generated ``render`` function, exactly as
:meth:`Template.to_source` prints it::

    # benchpress precompiled template
    FORMAT_VERSION = 1
    NAME = 'greeting'
    FINGERPRINT = '9f86d08...'
    PARTIALS = ()
    COMPILED_AT = 1760000000.0

    def render(_frame, _helpers):
        buf = []
        ...

Loading one never lexes or parses template text; the module is parsed by
Python, the metadata assignments are stripped, and the rest is compiled
into a Template bound to the loading Environment.
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING, Any

from benchpress.template import Template

if TYPE_CHECKING:
    from benchpress.environment import Environment

FORMAT_VERSION = 1

_HEADER = "# benchpress precompiled template"
_METADATA = ("FORMAT_VERSION", "NAME", "FINGERPRINT", "PARTIALS", "COMPILED_AT")


class PrecompileError(ValueError):
    """Text is not a loadable precompiled template."""


def dump(template: Template) -> str:
    """Python module source for ``template``."""
    header = [
        _HEADER,
        f"FORMAT_VERSION = {FORMAT_VERSION!r}",
        f"NAME = {template.name!r}",
        f"FINGERPRINT = {template.fingerprint!r}",
        f"PARTIALS = {tuple(sorted(template.partials))!r}",
        f"COMPILED_AT = {template.compiled_at!r}",
    ]
    return "\n".join(header) + "\n\n" + template.to_source() + "\n"


def _split_metadata(module: ast.Module) -> tuple[dict[str, Any], list[ast.stmt]]:
    metadata: dict[str, Any] = {}
    body: list[ast.stmt] = []
    for stmt in module.body:
        if (
            isinstance(stmt, ast.Assign)
            and len(stmt.targets) == 1
            and isinstance(stmt.targets[0], ast.Name)
            and stmt.targets[0].id in _METADATA
        ):
            metadata[stmt.targets[0].id] = ast.literal_eval(stmt.value)
        else:
            body.append(stmt)
    return metadata, body


def load(env: Environment, text: str) -> Template:
    """Build a Template from :func:`dump` output.

    Raises:
        PrecompileError: Missing metadata, unsupported format version or
            no ``render`` function
    """
    try:
        module = ast.parse(text)
    except SyntaxError as e:
        raise PrecompileError(f"precompiled template is not valid Python: {e}") from e

    metadata, body = _split_metadata(module)
    missing = [key for key in _METADATA if key not in metadata]
    if missing:
        raise PrecompileError(f"precompiled template lacks {', '.join(missing)}")
    if metadata["FORMAT_VERSION"] != FORMAT_VERSION:
        raise PrecompileError(
            f"unsupported precompiled format {metadata['FORMAT_VERSION']!r} "
            f"(expected {FORMAT_VERSION})"
        )
    if not any(isinstance(stmt, ast.FunctionDef) and stmt.name == "render" for stmt in body):
        raise PrecompileError("precompiled template defines no render function")

    name = metadata["NAME"]
    render_module = ast.Module(body=body, type_ignores=[])
    code = compile(render_module, f"<precompiled {name or 'template'}>", "exec")
    return Template(
        env,
        code,
        name,
        fingerprint=metadata["FINGERPRINT"],
        partials=frozenset(metadata["PARTIALS"]),
        module=render_module,
        compiled_at=metadata["COMPILED_AT"],
    )
