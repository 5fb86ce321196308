"""A visitor that records the graph it walks and renders it as Graphviz DOT."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .node import Hasher
from .visitor import HashSetVisitor, Visitor


@dataclass
class _Node:
    id: int
    name: str
    edges: list[int] = field(default_factory=list)
    operation: str | None = None
    dependency: str | None = None

    @property
    def identifier(self) -> str:
        return f"node_{self.id}"


class GraphvizVisitor(Visitor):
    """Builds a Graphviz representation of every node it resolves.

    Resolve with :meth:`resolve` rather than ``resolve_root``, which would
    clear the recorded graph.
    """

    def __init__(self) -> None:
        self._visitor = HashSetVisitor()
        self._nodes: dict[int, _Node] = {}
        self._stack: list[int] = []

    def render(self) -> str | None:
        """Render the visited graph as DOT, or None if nothing was visited."""
        if not self._nodes:
            return None
        lines = ["digraph Dag {"]
        for node_id in sorted(self._nodes):
            node = self._nodes[node_id]
            lines.append(f'  {node.identifier} [label="{node.name}"];')
            if node.operation is not None:
                cls = f', class="{node.dependency}"' if node.dependency else ""
                label = f'[label="{node.operation}"{cls}]'
                for child in node.edges:
                    lines.append(
                        f"  {self._nodes[child].identifier} -> {node.identifier} {label};"
                    )
        lines.append("}")
        return "\n".join(lines)

    def visit(self, node: Any) -> bool:
        return self._visitor.visit(node)

    def clear(self) -> None:
        self._visitor.clear()
        self._nodes.clear()

    def touch(self, node: Any, operation: str | None = None) -> None:
        self._stack.append(node.id)
        if node.id not in self._nodes:
            self._nodes[node.id] = _Node(id=node.id, name=node.node_name, operation=operation)

    def touch_dependency_group(self, dep: str) -> None:
        if not self._stack:
            raise RuntimeError("dependency group touched outside of any node")
        current = self._nodes.get(self._stack[-1])
        if current is not None:
            current.dependency = dep

    def leave(self, node: Any) -> None:
        if not self._stack:
            raise RuntimeError(f"left node {node.id} which was never touched")
        last = self._stack.pop()
        if last != node.id:
            raise RuntimeError(f"left node {node.id} but node {last} was being visited")
        if self._stack:
            parent = self._nodes.get(self._stack[-1])
            if parent is not None:
                parent.edges.append(last)

    def hasher(self) -> Hasher:
        return self._visitor.hasher()