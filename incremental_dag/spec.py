"""Graphs declared as Graphviz-style vertex and edge statements.

A declaration is a list of :class:`VertexStatement` and :class:`EdgeStatement`
objects. Every vertex carries a ``label`` naming its value type. Every edge
carries a ``label`` naming the operation of the node it points to. Edges may
also carry a ``class`` naming the dependency group that collects a node's
incoming edges.

:class:`ParsedGraphvizModel` collects the statements. :class:`GraphvizGraph`
checks that they form a single rooted acyclic graph and orders the nodes.
:func:`create_graph` then builds the live nodes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Union

from .dependency import Dependencies, Dependency
from .derived import DerivedNode
from .input import InputNode
from .node import NodeState
from .visitor import Resolve, Visitor
from .visitor import resolve_root as _resolve_root

LABEL = "label"
CLASS = "class"

_DEPENDENCIES_N = re.compile(r"Dependencies(\d+)")


class SpecError(ValueError):
    """A graph declaration is malformed or does not describe a valid graph."""


@dataclass
class VertexStatement:
    """A vertex declaration, e.g. ``a [label="SomeType"]``."""

    ident: str
    attributes: Mapping[str, str] = field(default_factory=dict)


@dataclass
class EdgeStatement:
    """An edge declaration, e.g. ``a -> b [label="op", class="Dependencies2"]``."""

    source: str
    target: str
    attributes: Mapping[str, str] = field(default_factory=dict)


Statement = Union[VertexStatement, EdgeStatement]


@dataclass
class _ParsedEdge:
    source: str
    target: str
    operation: str
    dependency_group: str | None = None


@dataclass(frozen=True)
class NodeDef:
    """A node's identifier and the name of its value type."""

    ident: str
    ty: str


@dataclass(frozen=True)
class DerivedNodeDef:
    """A derived node, its operation and the nodes it depends on.

    ``dependency_type`` is None when the node has a single plain dependency.
    """

    node: NodeDef
    operation: str
    incoming: tuple[NodeDef, ...]
    dependency_type: str | None = None


@dataclass
class ParsedGraphvizModel:
    """Vertices (sorted by identifier, mapped to type names) and edges."""

    name: str
    vertices: dict[str, str] = field(default_factory=dict)
    edges: list[_ParsedEdge] = field(default_factory=list)

    @classmethod
    def from_statements(cls, name: str, statements: Iterable[Statement]) -> ParsedGraphvizModel:
        """Collect statements, requiring a ``label`` on every vertex and edge."""
        vertices: dict[str, str] = {}
        edges: list[_ParsedEdge] = []
        for statement in statements:
            attributes = dict(statement.attributes)
            if isinstance(statement, VertexStatement):
                if LABEL not in attributes:
                    raise SpecError(f"Vertex `{statement.ident}` has no label")
                vertices[statement.ident] = attributes[LABEL]
            elif isinstance(statement, EdgeStatement):
                if LABEL not in attributes:
                    raise SpecError(
                        f"Edge `{statement.source} -> {statement.target}` has no label"
                    )
                edges.append(
                    _ParsedEdge(
                        source=statement.source,
                        target=statement.target,
                        operation=attributes[LABEL],
                        dependency_group=attributes.get(CLASS),
                    )
                )
            else:
                raise TypeError(f"not a graph statement: {statement!r}")
        return cls(name=name, vertices=dict(sorted(vertices.items())), edges=edges)

    def _edges_by_target(self) -> dict[str, list[_ParsedEdge]]:
        result: dict[str, list[_ParsedEdge]] = {}
        for edge in self.edges:
            result.setdefault(edge.target, []).append(edge)
        return result


def _is_cyclic(outgoing: list[list[int]]) -> bool:
    unvisited, active, done = 0, 1, 2
    marks = [unvisited] * len(outgoing)

    def visit(node: int) -> bool:
        marks[node] = active
        for nxt in outgoing[node]:
            if marks[nxt] == active:
                return True
            if marks[nxt] == unvisited and visit(nxt):
                return True
        marks[node] = done
        return False

    return any(marks[n] == unvisited and visit(n) for n in range(len(outgoing)))


def _longest_paths_to_root(outgoing: list[list[int]], root: int) -> list[int]:
    cache: dict[int, int] = {root: 0}

    def longest(node: int) -> int:
        if node not in cache:
            cache[node] = max((1 + longest(nxt) for nxt in outgoing[node]), default=0)
        return cache[node]

    return [longest(node) for node in range(len(outgoing))]


def _debug_str(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _debug_pairs(pairs: set[tuple[str, str | None]]) -> str:
    ordered = sorted(pairs, key=lambda p: (p[0], p[1] is not None, p[1] or ""))
    inner = ", ".join(
        f"({_debug_str(op)}, {'None' if group is None else f'Some({_debug_str(group)})'})"
        for op, group in ordered
    )
    return "{" + inner + "}"


@dataclass
class GraphvizGraph:
    """A connected, acyclic graph of at least two nodes with one root.

    ``derived`` is ordered so that every node comes after its dependencies;
    the root is last.
    """

    name: str
    inputs: list[NodeDef]
    derived: list[DerivedNodeDef]

    @property
    def root(self) -> DerivedNodeDef:
        return self.derived[-1]

    @classmethod
    def from_model(cls, model: ParsedGraphvizModel) -> GraphvizGraph:
        """Check a parsed model and order its nodes from leaves to root."""
        if len(model.vertices) < 2:
            raise SpecError("A Graphviz model must have at least 2 vertices.")
        if not model.edges:
            raise SpecError("A Graphviz model must have at least 1 edge.")

        names = sorted(model.vertices)
        index = {name: i for i, name in enumerate(names)}
        outgoing: list[list[int]] = [[] for _ in names]
        for edge in model.edges:
            if edge.source not in index or edge.target not in index:
                raise SpecError("Unknown node.")
            outgoing[index[edge.source]].append(index[edge.target])

        if _is_cyclic(outgoing):
            raise SpecError("Cycle detected in graph definition.")

        roots = [i for i, targets in enumerate(outgoing) if not targets]
        if not roots:
            raise SpecError("Couldn't find the root node of this graph.")
        if len(roots) > 1:
            listed = ", ".join(names[i] for i in roots)
            raise SpecError(f"More than one root node: {listed}.")

        distances = _longest_paths_to_root(outgoing, roots[0])
        order = sorted(range(len(names)), key=lambda i: (-distances[i], i))
        by_target = model._edges_by_target()

        inputs: list[NodeDef] = []
        derived: list[DerivedNodeDef] = []
        for i in order:
            name = names[i]
            node_def = NodeDef(ident=name, ty=model.vertices[name])
            edges = by_target.get(name)
            if edges is None:
                inputs.append(node_def)
                continue
            pairs = {(e.operation, e.dependency_group) for e in edges}
            if len(pairs) != 1:
                raise SpecError(
                    "Multiple values for `label` and `class` on edges to node: "
                    f"{_debug_pairs(pairs)}."
                )
            ((operation, dependency_type),) = pairs
            incoming = tuple(NodeDef(ident=e.source, ty=model.vertices[e.source]) for e in edges)
            if dependency_type is None and len(incoming) != 1:
                raise SpecError("Multiple incoming edges but no `class` attribute.")
            derived.append(
                DerivedNodeDef(
                    node=node_def,
                    operation=operation,
                    incoming=incoming,
                    dependency_type=dependency_type,
                )
            )
        if not derived:
            raise SpecError("Can't find a root node.")
        return cls(name=model.name, inputs=inputs, derived=derived)


def snake_case(text: str) -> str:
    """Put an underscore before every upper-case letter but the first, then
    lower-case ASCII letters."""
    result: list[str] = []
    for i, char in enumerate(text):
        if i > 0 and char.isupper():
            result.append("_")
        result.append(char.lower() if char.isascii() else char)
    return "".join(result)


class Graph(Resolve):
    """Live nodes built from a declaration; resolves to its root's state."""

    def __init__(
        self,
        name: str,
        inputs: Mapping[str, InputNode],
        nodes: Mapping[str, Any],
        root: Any,
    ) -> None:
        self.name = name
        self.inputs = dict(inputs)
        self.nodes = dict(nodes)
        self.root = root
        self._by_snake = {snake_case(ident): node for ident, node in self.inputs.items()}

    def update(self, name: str, update: Any) -> None:
        """Update the input node with this identifier (or its snake_case form)."""
        node = self.inputs.get(name) or self._by_snake.get(name)
        if node is None:
            raise KeyError(f"no input node named {name!r}")
        node.update(update)

    def resolve(self, visitor: Visitor) -> NodeState:
        return self.root.resolve(visitor)

    def resolve_root(self, visitor: Visitor) -> NodeState:
        return _resolve_root(self, visitor)

    def __repr__(self) -> str:
        return f"Graph(name={self.name!r}, inputs={sorted(self.inputs)!r})"


def _build_group(
    name: str,
    sources: list[Any],
    dependency_types: Mapping[str, Callable[..., Any]],
) -> Any:
    factory = dependency_types.get(name)
    if factory is not None:
        return factory(*sources)
    match = _DEPENDENCIES_N.fullmatch(name)
    if match is None:
        raise SpecError(f"Unknown dependency type `{name}`.")
    expected = int(match.group(1))
    if expected != len(sources):
        raise SpecError(
            f"`{name}` expects {expected} dependencies but the node has "
            f"{len(sources)} incoming edges."
        )
    try:
        return Dependencies(*sources)
    except ValueError as exc:
        raise SpecError(str(exc)) from exc


def create_graph(
    graph: GraphvizGraph | ParsedGraphvizModel,
    operations: Mapping[str, Callable[[Any, Any], Any]],
    values: Mapping[str, Any],
    dependency_types: Mapping[str, Callable[..., Any]] | None = None,
) -> Graph:
    """Build the nodes of a declared graph.

    ``operations`` maps edge labels to operations, ``values`` maps every node
    identifier to its initial value. Edge classes of the form
    ``Dependencies<N>`` build a :class:`~incremental_dag.dependency.Dependencies`
    group; any other class must be a key of ``dependency_types``, whose value
    is called with the incoming nodes in edge order.
    """
    if isinstance(graph, ParsedGraphvizModel):
        graph = GraphvizGraph.from_model(graph)
    groups = dict(dependency_types or {})

    def initial(ident: str) -> Any:
        try:
            return values[ident]
        except KeyError:
            raise SpecError(f"No initial value for node `{ident}`.") from None

    nodes: dict[str, Any] = {}
    inputs: dict[str, InputNode] = {}
    for node_def in graph.inputs:
        node = InputNode(initial(node_def.ident))
        nodes[node_def.ident] = node
        inputs[node_def.ident] = node

    for derived in graph.derived:
        try:
            op = operations[derived.operation]
        except KeyError:
            raise SpecError(f"No operation named `{derived.operation}`.") from None
        sources = [nodes[dep.ident] for dep in derived.incoming]
        if derived.dependency_type is None:
            deps: Any = Dependency(sources[0])
        else:
            deps = _build_group(derived.dependency_type, sources, groups)
        nodes[derived.node.ident] = DerivedNode(deps, op, initial(derived.node.ident))

    return Graph(graph.name, inputs, nodes, nodes[graph.root.node.ident])