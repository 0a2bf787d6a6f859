"""Static analysis over benchpress AST nodes.

- visitor: generic child traversal
- dependencies: partial references, helper usage and import cycles
"""

from benchpress.analysis.dependencies import (
    collect_helpers,
    collect_partials,
    contains_helper_call,
    find_import_cycle,
)
from benchpress.analysis.visitor import visit_children, walk

__all__ = [
    "collect_helpers",
    "collect_partials",
    "contains_helper_call",
    "find_import_cycle",
    "visit_children",
    "walk",
]
