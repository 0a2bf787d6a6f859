"""benchpress Template: compiled artifact and its render-time support.

- core: Template, the compiled, cacheable artifact
- scope: the scope chain and total path resolution
- helpers: runtime functions injected into generated code
"""

from benchpress.template.core import Template
from benchpress.template.scope import MISSING, ContainerKind, Frame
from benchpress.utils.html import Markup

__all__ = ["MISSING", "ContainerKind", "Frame", "Markup", "Template"]
