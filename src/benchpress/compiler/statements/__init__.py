"""Statement compilation for benchpress compiler.

Provides mixins for compiling benchpress statement AST nodes to Python AST
statements.

The statements package is organized into logical modules:
- basic: Basic output (text, interpolation)
- control_flow: Control flow (if / else if / else, each / else)
- template_structure: Partial inclusion (import)

Uses inline TYPE_CHECKING declarations for host attributes.

"""

from __future__ import annotations

from benchpress.compiler.statements.basic import BasicStatementMixin
from benchpress.compiler.statements.control_flow import ControlFlowMixin
from benchpress.compiler.statements.template_structure import TemplateStructureMixin


class StatementCompilationMixin(
    BasicStatementMixin,
    ControlFlowMixin,
    TemplateStructureMixin,
):
    """Combined mixin for compiling all statement types.

    Host attributes and cross-mixin dependencies are declared via inline
    TYPE_CHECKING blocks in each individual mixin.

    """

    __slots__ = ()
