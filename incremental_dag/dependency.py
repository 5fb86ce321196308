"""Edges between nodes: single dependencies and fixed-size groups of them."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterator

from .node import NodeHash, StateCell, hash_value
from .visitor import Resolve, Visitor

_MIN_GROUP = 2
_MAX_GROUP = 16


class DependencyState(enum.Enum):
    """Whether a dependency's hash differs from the one previously observed."""

    DIRTY = "Dirty"
    CLEAN = "Clean"


@dataclass
class DependencyEdge:
    """The resolved state of a dependency: its output and whether it changed."""

    state: DependencyState
    data: Any

    def is_dirty(self) -> bool:
        return self.state is DependencyState.DIRTY


class Dependency(Resolve):
    """Wraps a node and tracks its hash each time it is resolved."""

    def __init__(self, dependency: Any) -> None:
        self._last_state: StateCell = StateCell(None)
        self.dependency = dependency

    def resolve(self, visitor: Visitor) -> DependencyEdge:
        with self._last_state.borrow_mut() as last:
            data = self.dependency.resolve(visitor)
            current: NodeHash = hash_value(data, visitor.hasher())
            if last.value is not None and last.value == current:
                return DependencyEdge(DependencyState.CLEAN, data)
            last.value = current
            return DependencyEdge(DependencyState.DIRTY, data)

    def __repr__(self) -> str:
        return f"Dependency(last_state={self._last_state!r}, dependency={self.dependency!r})"


class DependencyReference:
    """The resolved edges of a dependency group, in declaration order."""

    def __init__(self, edges: Any) -> None:
        self._edges = tuple(edges)

    def is_dirty(self) -> bool:
        return any(edge.is_dirty() for edge in self._edges)

    def __getitem__(self, index: int) -> DependencyEdge:
        return self._edges[index]

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[DependencyEdge]:
        return iter(self._edges)

    def __repr__(self) -> str:
        return f"DependencyReference({list(self._edges)!r})"


class Dependencies(Resolve):
    """A group of between 2 and 16 dependencies resolved together."""

    def __init__(self, *args: Any) -> None:
        if not _MIN_GROUP <= len(args) <= _MAX_GROUP:
            raise ValueError(
                f"Dependencies takes between {_MIN_GROUP} and {_MAX_GROUP} "
                f"nodes, got {len(args)}"
            )
        self._dependencies = tuple(Dependency(arg) for arg in args)

    @property
    def node_name(self) -> str:
        return f"Dependencies{len(self._dependencies)}"

    def resolve(self, visitor: Visitor) -> DependencyReference:
        visitor.touch_dependency_group(self.node_name)
        return DependencyReference(dep.resolve(visitor) for dep in self._dependencies)

    def __len__(self) -> int:
        return len(self._dependencies)