"""Incremental computation over dependency graphs of arbitrary values.

Modules: errors, node, visitor, dependency, input, derived, graphviz, value,
groups and spec.
"""

__version__ = "0.11.0"

__all__ = [
    "errors",
    "node",
    "visitor",
    "dependency",
    "input",
    "derived",
    "graphviz",
    "value",
    "groups",
    "spec",
]