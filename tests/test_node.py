from dataclasses import dataclass, field

import pytest

from incremental_dag.errors import BorrowError, BorrowMutError
from incremental_dag.node import (
    Hasher,
    IsDirty,
    NodeHash,
    NodeState,
    StateCell,
    UpdateInput,
    apply_update,
    clean,
    hash_value,
    next_node_id,
    node_name,
    reset_node_id,
)


@dataclass
class SampleData:
    """Pushes old values to ``recent`` and replaces ``inner``."""

    inner: int
    recent: list = field(default_factory=list)

    node_name = "TestData"

    def hash_value(self, hasher):
        hasher.write(self.inner.to_bytes(4, "little"))
        return NodeHash.hashed(hasher.finish())

    def clean(self):
        self.recent.clear()

    def update_mut(self, update):
        self.recent.append(self.inner)
        self.inner = update


@dataclass
class I32:
    number: int

    def hash_value(self, hasher):
        hasher.write(self.number.to_bytes(4, "little", signed=True))
        return NodeHash.hashed(hasher.finish())


class Flag:
    def __init__(self, dirty):
        self.dirty = dirty

    def is_dirty(self):
        return self.dirty


def test_node_hash_equality_rules():
    assert NodeHash() != NodeHash()
    assert NodeHash.not_hashed() != NodeHash.not_hashed()
    assert NodeHash.not_hashed() != NodeHash.hashed(0)
    assert NodeHash.hashed(0) != NodeHash.hashed(1)
    assert NodeHash.hashed(1) == NodeHash.hashed(1)


def test_node_hash_repr_and_flags():
    assert repr(NodeHash.hashed(420)) == "Hashed(420)"
    assert repr(NodeHash.not_hashed()) == "NotHashed"
    assert NodeHash.hashed(420).is_hashed()
    assert not NodeHash.not_hashed().is_hashed()


@pytest.mark.parametrize("bad", [-1, 1 << 64])
def test_node_hash_rejects_out_of_range(bad):
    with pytest.raises(ValueError):
        NodeHash.hashed(bad)


def test_hasher_matches_u32_42():
    hasher = Hasher()
    hasher.write((42).to_bytes(4, "little"))
    assert hasher.finish() == 15387811073369036852


def test_hasher_matches_i32_123():
    hasher = Hasher()
    hasher.write((123).to_bytes(4, "little", signed=True))
    assert hasher.finish() == 14370432302296844161


def test_hasher_matches_zero_discriminant():
    hasher = Hasher()
    hasher.write(bytes(8))
    assert hasher.finish() == 13646096770106105413


def test_hasher_split_writes_equal_single_write():
    whole = Hasher()
    whole.write(b"hello, incremental world")
    parts = Hasher()
    parts.write(b"hello, ")
    parts.write(b"incremental world")
    assert whole.finish() == parts.finish()


def test_hasher_finish_is_repeatable_and_keyed():
    hasher = Hasher()
    hasher.write(b"abc")
    first = hasher.finish()
    assert hasher.finish() == first
    keyed = Hasher(1, 2)
    keyed.write(b"abc")
    assert keyed.finish() != first


def test_sample_data_behaviour():
    data = SampleData(42)
    assert node_name(data) == "TestData"
    assert hash_value(data, Hasher()) == NodeHash.hashed(15387811073369036852)
    assert apply_update(data, 420) is data
    assert data == SampleData(420, [42])
    clean(data)
    assert data == SampleData(420, [])


def test_node_state():
    state = NodeState(I32(123))
    assert repr(state) == "NodeState(node_hash=NotHashed, value=I32(number=123))"
    assert state.node_name == "I32"
    assert node_name(state) == "I32"
    state.update_node_hash(Hasher())
    assert state.node_hash == NodeHash.hashed(14370432302296844161)
    assert state.hash_value(Hasher(9, 9)) == NodeHash.hashed(14370432302296844161)
    state.value = I32(456)
    assert state.value == I32(456)


def test_node_state_clean_delegates():
    state = NodeState(SampleData(1, [5, 6]))
    state.clean()
    assert state.value.recent == []


def test_node_state_primitive_repr():
    assert repr(NodeState(123)) == "NodeState(node_hash=NotHashed, value=123)"


def test_primitive_hashes_are_deterministic():
    assert hash_value(42, Hasher()) == hash_value(42, Hasher())
    assert hash_value(42, Hasher()) != hash_value(43, Hasher())
    assert hash_value("a", Hasher()) == hash_value("a", Hasher())
    assert hash_value("a", Hasher()) != hash_value("b", Hasher())
    assert hash_value((1, "a"), Hasher()) != hash_value((1, "b"), Hasher())
    assert hash_value(1 << 100, Hasher()) != hash_value(1 << 101, Hasher())


def test_unhashable_primitive_raises():
    with pytest.raises(TypeError):
        hash_value(1.5, Hasher())


def test_primitive_names_and_updates():
    assert node_name(42) == "int"
    assert node_name("x") == "str"
    assert apply_update(5, 7) == 7
    value = 420
    clean(value)
    assert value == 420


def test_node_name_of_classes_and_functions():
    def multiply():
        return None

    assert node_name(multiply) == "multiply"
    assert node_name(I32) == "I32"
    assert node_name(SampleData) == "TestData"


def test_protocols():
    updated = apply_update(SampleData(1), 2)
    assert updated == SampleData(2, [1])
    assert isinstance(updated, UpdateInput)
    assert not isinstance(apply_update(5, 6), UpdateInput)
    assert isinstance(Flag(True), IsDirty)
    assert not isinstance(node_name("text"), IsDirty)


def test_next_node_id_sequence():
    reset_node_id()
    assert [next_node_id() for _ in range(32)] == list(range(32))
    reset_node_id()
    assert next_node_id() == 0


def test_state_cell_shared_reads():
    cell = StateCell(5)
    with cell.borrow() as first, cell.borrow() as second:
        assert first == second == 5


def test_state_cell_write_while_reading_fails():
    cell = StateCell(5)
    with cell.borrow():
        with pytest.raises(BorrowMutError):
            with cell.borrow_mut():
                pass


def test_state_cell_read_while_writing_fails():
    cell = StateCell(5)
    with cell.borrow_mut():
        with pytest.raises(BorrowError):
            with cell.borrow():
                pass
        with pytest.raises(BorrowMutError):
            with cell.borrow_mut():
                pass


def test_state_cell_write_back_and_release():
    cell = StateCell(5)
    with cell.borrow_mut() as guard:
        guard.value = 9
    with cell.borrow() as value:
        assert value == 9


def test_state_cell_released_after_exception():
    cell = StateCell(1)
    with pytest.raises(RuntimeError):
        with cell.borrow_mut() as guard:
            guard.value = 2
            raise RuntimeError("boom")
    with cell.borrow_mut() as guard:
        assert guard.value == 2