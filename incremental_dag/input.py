"""Input nodes: the leaves of a graph, updated from outside it."""

from __future__ import annotations

import enum
from typing import Any

from .node import NodeState, StateCell, apply_update, next_node_id, node_name
from .visitor import Resolve, Visitor


class InputState(enum.Enum):
    """Ensures pending changes are flushed at most once between updates."""

    UPDATING = "Updating"
    RESOLVING = "Resolving"
    RESOLVED = "Resolved"

    @classmethod
    def default(cls) -> InputState:
        return cls.UPDATING


class InputNode(Resolve):
    """A node wrapping a value that can be updated from outside the graph."""

    def __init__(self, value: Any, node_id: int | None = None) -> None:
        self._resolve_state = StateCell(InputState.default())
        self._state = StateCell(NodeState(value))
        self.id = next_node_id() if node_id is None else node_id
        self.node_name = node_name(value)

    def update(self, update: Any) -> None:
        """Apply an update to the wrapped value.

        Raises BorrowMutError if the node is currently being read or written.
        """
        with self._state.borrow_mut() as node_guard, self._resolve_state.borrow_mut() as resolve_guard:
            state = node_guard.value
            if resolve_guard.value is InputState.RESOLVING:
                state.clean()
            resolve_guard.value = InputState.UPDATING
            state.value = apply_update(state.value, update)

    def value(self) -> Any:
        """Return the wrapped value; raises BorrowError while it is written."""
        with self._state.borrow() as state:
            return state.value

    def resolve(self, visitor: Visitor) -> NodeState:
        visitor.touch(self, None)
        if visitor.visit(self):
            with self._state.borrow_mut() as node_guard, self._resolve_state.borrow_mut() as resolve_guard:
                state = node_guard.value
                current = resolve_guard.value
                if current is InputState.UPDATING:
                    resolve_guard.value = InputState.RESOLVING
                elif current is InputState.RESOLVING:
                    state.clean()
                    resolve_guard.value = InputState.RESOLVED
                state.update_node_hash(visitor.hasher())
        visitor.leave(self)
        with self._state.borrow() as state:
            return state

    def __repr__(self) -> str:
        return (
            f"InputNode(id={self.id}, resolve_state={self._resolve_state!r}, "
            f"value={self._state!r})"
        )