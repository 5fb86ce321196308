import pytest

from incremental_dag.dependency import Dependencies, Dependency
from incremental_dag.derived import DerivedNode
from incremental_dag.errors import BorrowError, EarlyExit
from incremental_dag.input import InputNode
from incremental_dag.visitor import DiagnosticVisitor, HashSetVisitor


class Multiply:
    def __call__(self, target, deps):
        return deps[0].data.value * deps[1].data.value


class Concat:
    def __call__(self, target, deps):
        return f"{deps[0].data.value} {deps[1].data.value}"


def test_multiply_example():
    a = InputNode(7)
    b = InputNode(6)
    c = DerivedNode(Dependencies(a, b), Multiply(), 0)
    visitor = HashSetVisitor()
    assert c.resolve_root(visitor).value == 42
    assert len(visitor) == 0
    a.update(70)
    assert c.resolve_root(visitor).value == 420


def test_concat_example_and_chaining():
    input_1 = InputNode("Hello,")
    input_2 = InputNode("???")
    node = DerivedNode(Dependencies(input_1, input_2), Concat(), "")
    visitor = HashSetVisitor()
    assert node.resolve_root(visitor).value == "Hello, ???"
    input_2.update("world!")
    assert node.resolve_root(visitor).value == "Hello, world!"
    input_3 = InputNode("See ya.")
    another = DerivedNode(Dependencies(node, input_3), Concat(), "")
    assert another.resolve_root(visitor).value == "Hello, world! See ya."


def test_cached_when_inputs_unchanged():
    calls = []

    def double(target, edge):
        calls.append(edge.data.value)
        return edge.data.value * 2

    a = InputNode(5)
    node = DerivedNode(Dependency(a), double, 0)
    visitor = DiagnosticVisitor()
    assert node.resolve(visitor).value == 10
    assert node.id in visitor.recalculated
    visitor.clear()
    assert node.resolve(visitor).value == 10
    assert visitor.recalculated == set()
    assert calls == [5]
    a.update(5)
    visitor.clear()
    node.resolve(visitor)
    assert calls == [5]
    a.update(6)
    visitor.clear()
    assert node.resolve(visitor).value == 12
    assert node.id in visitor.recalculated
    assert calls == [5, 6]


def test_value_and_names():
    a = InputNode(1)
    node = DerivedNode(Dependency(a), Multiply(), "text", node_id=99)
    assert node.id == 99
    assert node.value() == "text"
    assert node.node_name == "str"
    assert node.operation_name == "Multiply"


def test_early_exit_propagates():
    def fail(target, edge):
        raise EarlyExit("stop")

    node = DerivedNode(Dependency(InputNode(1)), fail, 0)
    visitor = HashSetVisitor()
    with pytest.raises(EarlyExit) as info:
        node.resolve_root(visitor)
    assert str(info.value) == "stop"
    assert len(visitor) == 0
    assert node.value() == 0


def test_reading_own_value_during_update_is_borrow_error():
    holder = {}

    def peek(target, edge):
        return holder["node"].value()

    node = DerivedNode(Dependency(InputNode(1)), peek, 0)
    holder["node"] = node
    with pytest.raises(BorrowError):
        node.resolve_root(HashSetVisitor())


def test_operation_must_be_callable():
    with pytest.raises(TypeError):
        DerivedNode(Dependency(InputNode(1)), 3, 0)