# incremental_dag

Incremental computation between arbitrary values, arranged as a directed
acyclic graph.

Applications that react to changes from several input sources are often
easier to grow when their state is broken into small, testable pieces that
depend on one another. `incremental_dag` lets you build such a graph and
recompute only the parts whose inputs have actually changed. Everything else
is served from cache.

## Installation

```
pip install .
```

The package has no runtime dependencies. To run the test suite:

```
pip install .[test]
pytest
```

## Concepts

- **Input nodes** (`incremental_dag.input.InputNode`) are the leaves of the
  graph. They wrap a value and accept updates from outside the graph through
  `InputNode.update`. `InputNode.value()` returns the wrapped value.
- **Derived nodes** (`incremental_dag.derived.DerivedNode`) hold a value that
  is computed from other nodes. They are built from three things:
  - their dependencies;
  - an operation, called as `operation(current_value, resolved_deps)`, whose
    return value becomes the node's new value;
  - an initial value.

  The operation runs only when a dependency has changed since it was last
  seen.
- **Dependencies** (`incremental_dag.dependency`) remember the hash each
  dependency had when it was last seen, so a derived node knows whether it is
  dirty.
  - `Dependency` wraps one node.
  - `Dependencies(*nodes)` groups 2 to 16 nodes. It resolves to a
    `DependencyReference`, which is indexed in order and yields
    `DependencyEdge` objects. Each edge has `.data` (the dependency's
    `NodeState`) and `.is_dirty()`.
- **Node hashes** (`incremental_dag.node.NodeHash`) summarise a node's state.
  `NodeHash.not_hashed()` never compares equal to anything, not even to
  itself. Anything depending on an unhashable value is therefore recomputed
  on every resolve.
- **Visitors** (`incremental_dag.visitor`) walk the graph during a resolve and
  make sure each node is processed at most once.
  - `HashSetVisitor` is the default visitor.
  - `DiagnosticVisitor` also records, in its `recalculated` set, the ids of
    the nodes that recomputed their value.

  `resolve_root(node, visitor)`, also available as `node.resolve_root(visitor)`,
  resolves a node and then clears the visitor for the next pass. Reuse the
  same visitor between resolves, because each visitor keys its hashes
  differently.

## Example

```python
from incremental_dag.dependency import Dependencies
from incremental_dag.derived import DerivedNode
from incremental_dag.input import InputNode
from incremental_dag.visitor import HashSetVisitor


def multiply(current, deps):
    return deps[0].data.value * deps[1].data.value


a = InputNode(7)
b = InputNode(6)
c = DerivedNode(Dependencies(a, b), multiply, 0)

visitor = HashSetVisitor()
print(c.resolve_root(visitor).value)  # 42

a.update(70)
print(c.resolve_root(visitor).value)  # 420
```

When a value has no `update_mut` method, an update simply replaces it. This
covers integers, booleans, strings and the like. A value with
`update_mut(update)` changes in place. It may also define `clean()` to reset
its "recently changed" state once dependants have seen it.

## Resolution errors

All errors live in `incremental_dag.errors` and derive from `ResolveError`.

- A cycle, or reading a node while it is being written, raises
  `AnyBorrowError`. Its subclasses are `BorrowError` and `BorrowMutError`.
- An operation may abort a resolve by raising `EarlyExit("reason")`. Its
  message is the text it was given.

## Visualising a graph

`incremental_dag.graphviz.GraphvizVisitor` records every node it passes
through and renders the graph as Graphviz DOT. Resolve with `resolve`, not
`resolve_root`, because clearing the visitor also discards the recorded
graph. Then call `render()`. For the example above, in a fresh process:

```python
from incremental_dag.graphviz import GraphvizVisitor

viz = GraphvizVisitor()
c.resolve(viz)
print(viz.render())
```

```
digraph Dag {
  node_0 [label="int"];
  node_1 [label="int"];
  node_2 [label="int"];
  node_0 -> node_2 [label="multiply", class="Dependencies2"];
  node_1 -> node_2 [label="multiply", class="Dependencies2"];
}
```

`render()` returns `None` if nothing has been visited.

## Building a graph from a description

`incremental_dag.spec` works in the other direction. It starts from a list of
statements:

- `VertexStatement(ident, {"label": TypeName})` declares a vertex.
- `EdgeStatement(source, target, {"label": operation, "class": group})`
  declares an edge. The `class` is needed when a node has several incoming
  edges.

These steps turn the statements into live nodes:

1. `ParsedGraphvizModel.from_statements(name, statements)` collects the
   statements.
2. `GraphvizGraph.from_model` checks the model. It needs at least two
   vertices, at least one edge, no unknown nodes, no cycles and a single
   root. It then orders the derived nodes so that each comes after what it
   depends on.
3. `create_graph(graph, operations, values, dependency_types=None)` builds
   the live nodes and returns a `Graph`.

In `create_graph`, edge classes of the form `Dependencies<N>` become
`Dependencies` groups. Any other class must be a key of `dependency_types`.

```python
from incremental_dag.spec import (
    EdgeStatement, ParsedGraphvizModel, VertexStatement, create_graph,
)

statements = [
    VertexStatement("a", {"label": "int"}),
    VertexStatement("b", {"label": "int"}),
    VertexStatement("c", {"label": "int"}),
    EdgeStatement("a", "c", {"label": "Multiply", "class": "Dependencies2"}),
    EdgeStatement("b", "c", {"label": "Multiply", "class": "Dependencies2"}),
]
model = ParsedGraphvizModel.from_statements("Dag", statements)
graph = create_graph(model, {"Multiply": multiply}, {"a": 7, "b": 6, "c": 0})
print(graph.resolve_root(HashSetVisitor()).value)  # 42
graph.update("a", 70)
```

`Graph.update` accepts an input's identifier or its `snake_case` form.
Problems in a description raise `SpecError`.

## Value helpers

`incremental_dag.value` has two decorators:

- `@value` gives a class a `node_name` and a `hash_value` method. Options:
  - by default the object is hashed from all of its fields;
  - `field_attrs={"field": ["hash"]}` hashes a single field;
  - `attrs=["unhashable"]` never produces a hash.

  It also adds a no-op `clean()`, unless you pass `attrs=["custom_clean"]`
  and define `clean()` yourself.
- `@operation` names a callable operation class after itself.

Contradictory or unknown attributes raise `AttributeSpecError`.

`incremental_dag.groups.dependencies(name, field_names)` defines a dependency
group class `<name>Dep` with 2 to 26 named fields. It resolves to a
`<name>Ref` whose edges are read as attributes.

## What it does not do

- `incremental_dag.spec` does not read DOT text. Graph descriptions are built
  from `VertexStatement` and `EdgeStatement` objects.
- The package has no command-line tool. It is used as a library.