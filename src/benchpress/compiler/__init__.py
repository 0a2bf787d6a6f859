"""benchpress compiler: node tree to Python code object.

The Compiler generates an ``ast.Module`` defining
``render(_frame, _helpers)`` and compiles it with the builtin
``compile()``. See :mod:`benchpress.compiler.core`.
"""

from benchpress.compiler.core import Compiler

__all__ = ["Compiler"]
