"""Derived nodes: values computed from other nodes and cached between
resolutions."""

from __future__ import annotations

from typing import Any, Callable

from .node import NodeState, StateCell, next_node_id, node_name
from .visitor import Resolve, Visitor


class DerivedNode(Resolve):
    """A node whose value is computed from its dependencies.

    ``dependencies`` is a :class:`~incremental_dag.dependency.Dependency`, a
    :class:`~incremental_dag.dependency.Dependencies` group, or anything else
    whose ``resolve`` returns an object with ``is_dirty()``.

    ``operation`` is called as ``operation(current_value, resolved_deps)``
    whenever any dependency has changed since it was last observed, and its
    return value becomes the node's new value. Raise
    :class:`~incremental_dag.errors.EarlyExit` from it to abort resolution.
    Its name (see :func:`~incremental_dag.node.node_name`) labels the node's
    incoming edges in visualisations.
    """

    def __init__(
        self,
        dependencies: Any,
        operation: Callable[[Any, Any], Any],
        value: Any,
        node_id: int | None = None,
    ) -> None:
        if not callable(operation):
            raise TypeError("operation must be callable")
        self._dependencies = dependencies
        self._operation = operation
        self._state = StateCell(NodeState(value))
        self.id = next_node_id() if node_id is None else node_id
        self.node_name = node_name(value)
        self.operation_name = node_name(operation)

    def value(self) -> Any:
        """Return the current value; raises BorrowError while it is written."""
        with self._state.borrow() as state:
            return state.value

    def resolve(self, visitor: Visitor) -> NodeState:
        visitor.touch(self, self.operation_name)
        if visitor.visit(self):
            with self._state.borrow_mut() as guard:
                state = guard.value
                state.clean()
                deps = self._dependencies.resolve(visitor)
                if deps.is_dirty():
                    state.value = self._operation(state.value, deps)
                    state.update_node_hash(visitor.hasher())
                    visitor.notify_recalculated(self)
        visitor.leave(self)
        with self._state.borrow() as state:
            return state

    def __repr__(self) -> str:
        return (
            f"DerivedNode(id={self.id}, operation={self.operation_name!r}, "
            f"value={self._state!r})"
        )