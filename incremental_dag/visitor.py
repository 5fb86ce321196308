"""Visitors that track which nodes a resolution has reached, and the resolver
interface every node implements."""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from typing import Any

from .node import Hasher


class Visitor(ABC):
    """Passed through a graph during resolution to track visited nodes."""

    @abstractmethod
    def visit(self, node: Any) -> bool:
        """Return True if and only if this node has not been visited yet."""

    @abstractmethod
    def clear(self) -> None:
        """Forget every visited node so the next resolution revisits them."""

    def touch(self, node: Any, operation: str | None = None) -> None:
        """Note that a node is being entered; used for visualisations."""

    def notify_recalculated(self, node: Any) -> None:
        """Note that a node recomputed its value; used for diagnostics."""

    def touch_dependency_group(self, dep: str) -> None:
        """Note the dependency group of the current node."""

    def leave(self, node: Any) -> None:
        """Undo a :meth:`touch`."""

    @abstractmethod
    def hasher(self) -> Hasher:
        """Return a fresh hasher, keyed identically on every call."""


def _random_keys() -> tuple[int, int]:
    return secrets.randbits(64), secrets.randbits(64)


class HashSetVisitor(Visitor):
    """The default visitor: a set of visited node ids."""

    def __init__(self) -> None:
        self._visited: set[int] = set()
        self._keys = _random_keys()

    def visit(self, node: Any) -> bool:
        if node.id in self._visited:
            return False
        self._visited.add(node.id)
        return True

    def clear(self) -> None:
        self._visited.clear()

    def hasher(self) -> Hasher:
        return Hasher(*self._keys)

    def __len__(self) -> int:
        return len(self._visited)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._visited

    def __repr__(self) -> str:
        return f"HashSetVisitor({sorted(self._visited)!r})"


class DiagnosticVisitor(Visitor):
    """A visitor that also records which nodes recomputed their value."""

    def __init__(self) -> None:
        self.visitor = HashSetVisitor()
        self.recalculated: set[int] = set()

    def visit(self, node: Any) -> bool:
        return self.visitor.visit(node)

    def clear(self) -> None:
        self.visitor.clear()
        self.recalculated.clear()

    def notify_recalculated(self, node: Any) -> None:
        self.recalculated.add(node.id)

    def hasher(self) -> Hasher:
        return self.visitor.hasher()


class Resolve(ABC):
    """A depth-first resolver passing a visitor through a graph."""

    @abstractmethod
    def resolve(self, visitor: Visitor) -> Any:
        """Resolve all dependencies through the visitor and return the output."""

    def resolve_root(self, visitor: Visitor) -> Any:
        """Resolve this node, then clear the visitor for the next resolution."""
        return resolve_root(self, visitor)


def resolve_root(node: Any, visitor: Visitor) -> Any:
    """Resolve ``node`` and clear ``visitor`` afterwards, even on failure."""
    try:
        return node.resolve(visitor)
    finally:
        visitor.clear()