"""benchpress environment: configuration, loaders, helpers and the cache.

- exceptions: the TemplateError hierarchy and ErrorCode
- loaders: FileSystemLoader, DictLoader, ChoiceLoader, FunctionLoader
- registry: HelperRegistry
- helpers: built-in helpers registered on every Environment
- core: Environment
"""

from benchpress.environment.exceptions import (
    CompileError,
    ErrorCode,
    HelperNotFoundError,
    PartialNotFoundError,
    SourceSnippet,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)
from benchpress.environment.loaders import (
    ChoiceLoader,
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    Loader,
)
from benchpress.environment.registry import HelperRegistry
from benchpress.environment.helpers import DEFAULT_HELPERS
from benchpress.environment.core import Environment, fingerprint

__all__ = [
    "DEFAULT_HELPERS",
    "ChoiceLoader",
    "CompileError",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "FunctionLoader",
    "HelperNotFoundError",
    "HelperRegistry",
    "Loader",
    "PartialNotFoundError",
    "SourceSnippet",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "build_source_snippet",
    "fingerprint",
]
