"""benchpress: directive templates compiled to Python bytecode.

Templates mix literal markup with a small directive language:
interpolation, conditionals, iteration, helper calls and partial imports.
Each template is compiled once into a Python ``render`` function and kept
in a concurrency-safe cache; rendering is a single synchronous call.

Quickstart:
    >>> from benchpress import Environment
    >>> env = Environment()
    >>> await env.render("hello", {"name": "World"}, source="Hello {name}!")
    'Hello World!'

File-based templates:
    >>> from benchpress import Environment, FileSystemLoader
    >>> env = Environment(loader=FileSystemLoader("templates/"))
    >>> html = await env.render("pages/about", {"user": user})

Syntax:
    ```
    {name}                       escaped interpolation
    {{body}}                     raw interpolation
    {escape(title)}              helper call
    {{{ if user.admin }}}...{{{ else if user }}}...{{{ else }}}...{{{ end }}}
    {{{ each posts as post, i }}}{post.title}{{{ else }}}none{{{ end }}}
    {{{ import partials/footer with site }}}
    \\{name}                      literal, not interpolated
    ```

The legacy comment spelling (``<!-- IF x -->``, ``<!-- BEGIN items -->``,
``<!-- ENDIF x -->``, ``<!-- END items -->``, ``<!-- IMPORT name -->``)
compiles to the same tree.

Architecture:
Template Source → Lexer → Parser → benchpress AST → Compiler → Python AST → exec()

Missing Values:
A path that resolves nowhere renders as the empty string and is falsy.
Helpers and partials are the only names that must exist.

"""

from benchpress._types import Token, TokenType
from benchpress.environment import (
    DEFAULT_HELPERS,
    ChoiceLoader,
    CompileError,
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    FunctionLoader,
    HelperNotFoundError,
    HelperRegistry,
    PartialNotFoundError,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)
from benchpress.integrations import view_engine
from benchpress.parser import ParseError
from benchpress.render_context import (
    RenderContext,
    get_render_context,
    get_render_context_required,
    render_context,
)
from benchpress.template import MISSING, Frame, Markup, Template
from benchpress.utils.html import html_escape

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_HELPERS",
    "MISSING",
    "ChoiceLoader",
    "CompileError",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "Frame",
    "FunctionLoader",
    "HelperNotFoundError",
    "HelperRegistry",
    "Markup",
    "ParseError",
    "PartialNotFoundError",
    "RenderContext",
    "SourceSnippet",
    "Template",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "Token",
    "TokenType",
    "__version__",
    "build_source_snippet",
    "get_render_context",
    "get_render_context_required",
    "html_escape",
    "render_context",
    "view_engine",
]
