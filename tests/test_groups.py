import pytest

from incremental_dag.derived import DerivedNode
from incremental_dag.graphviz import GraphvizVisitor
from incremental_dag.groups import DependencyGroup, GroupReference, dependencies
from incremental_dag.input import InputNode
from incremental_dag.visitor import HashSetVisitor

Components = dependencies("Components", ["node1", "node2", "node3"])


def _nodes():
    return InputNode(1), InputNode(2), InputNode(3)


def test_group_names():
    assert Components.__name__ == "ComponentsDep"
    assert Components.node_name == "ComponentsDep"
    assert Components.reference_type.__name__ == "ComponentsRef"
    assert Components.fields == ("node1", "node2", "node3")


def test_resolve_reads_edges_by_name():
    a, b, c = _nodes()
    group = Components(a, b, c)
    ref = group.resolve_root(HashSetVisitor())
    assert isinstance(ref, GroupReference)
    assert [ref.node1.data.value, ref.node2.data.value, ref.node3.data.value] == [1, 2, 3]


def test_dirty_tracking():
    a, b, c = _nodes()
    group = Components(a, b, c)
    visitor = HashSetVisitor()
    first = group.resolve_root(visitor)
    assert first.is_dirty()
    second = group.resolve_root(visitor)
    assert not second.is_dirty()
    b.update(20)
    third = group.resolve_root(visitor)
    assert third.is_dirty()
    assert third.node2.is_dirty()
    assert not third.node1.is_dirty()
    assert not third.node3.is_dirty()
    assert third.node2.data.value == 20


def test_keyword_and_positional_construction():
    a, b, c = _nodes()
    mixed = Components(a, node3=c, node2=b)
    ref = mixed.resolve_root(HashSetVisitor())
    assert [ref.node1.data.value, ref.node2.data.value, ref.node3.data.value] == [1, 2, 3]
    assert mixed.node1.dependency is a


@pytest.mark.parametrize(
    "args, kwargs",
    [
        ((), {}),
        ((1, 2, 3, 4), {}),
        ((1, 2), {}),
        ((1, 2, 3), {"node1": 1}),
        ((1, 2), {"other": 3}),
    ],
)
def test_bad_construction(args, kwargs):
    with pytest.raises(TypeError):
        Components(*args, **kwargs)


def test_base_group_cannot_be_created():
    with pytest.raises(TypeError):
        DependencyGroup(InputNode(1), InputNode(2))


def test_missing_attribute():
    a, b, c = _nodes()
    ref = Components(a, b, c).resolve_root(HashSetVisitor())
    assert ref.node1.data.value == 1
    assert getattr(ref, "node4", "absent") == "absent"
    with pytest.raises(AttributeError):
        getattr(ref, "node4")


def test_field_names_from_string():
    Pair = dependencies("Pair", "left, right")
    assert Pair.fields == ("left", "right")


def test_too_few_fields():
    with pytest.raises(ValueError, match="at least 2 fields"):
        dependencies("Single", ["only"])


def test_field_limit():
    names = [f"f{i}" for i in range(26)]
    assert len(dependencies("Wide", names).fields) == 26
    with pytest.raises(ValueError, match="up to 26 fields"):
        dependencies("TooWide", names + ["extra"])


@pytest.mark.parametrize(
    "name, fields",
    [
        ("Bad Name", ["a", "b"]),
        ("Ok", ["a", "a"]),
        ("Ok", ["a", "resolve"]),
        ("Ok", ["a", "_hidden"]),
        ("Ok", ["a", "class"]),
    ],
)
def test_invalid_definitions(name, fields):
    with pytest.raises(ValueError):
        dependencies(name, fields)


def test_group_drives_derived_node_and_graphviz():
    Pair = dependencies("Pair", ["left", "right"])
    a = InputNode(4)
    b = InputNode(5)

    def total(current, deps):
        return deps.left.data.value + deps.right.data.value

    node = DerivedNode(Pair(a, b), total, 0)
    visitor = GraphvizVisitor()
    assert node.resolve(visitor).value == 9
    rendered = visitor.render()
    assert 'class="PairDep"' in rendered
    a.update(10)
    assert node.resolve_root(HashSetVisitor()).value == 15