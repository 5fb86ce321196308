"""Node values, their hashes and the state wrapper held by every node."""

from __future__ import annotations

import inspect
import struct
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Protocol, runtime_checkable

from .errors import BorrowError, BorrowMutError

_MASK = (1 << 64) - 1
_I64 = 1 << 63
_I128 = 1 << 127


def _rotl(x: int, bits: int) -> int:
    return ((x << bits) | (x >> (64 - bits))) & _MASK


def _sip_round(v0: int, v1: int, v2: int, v3: int) -> tuple[int, int, int, int]:
    v0 = (v0 + v1) & _MASK
    v1 = _rotl(v1, 13) ^ v0
    v0 = _rotl(v0, 32)
    v2 = (v2 + v3) & _MASK
    v3 = _rotl(v3, 16) ^ v2
    v0 = (v0 + v3) & _MASK
    v3 = _rotl(v3, 21) ^ v0
    v2 = (v2 + v1) & _MASK
    v1 = _rotl(v1, 17) ^ v2
    v2 = _rotl(v2, 32)
    return v0, v1, v2, v3


class Hasher:
    """SipHash-1-3 over every byte written, keyed by two 64-bit words."""

    def __init__(self, key0: int = 0, key1: int = 0) -> None:
        self._keys = (key0 & _MASK, key1 & _MASK)
        self._data = bytearray()

    def write(self, data: bytes | bytearray | memoryview) -> None:
        """Feed bytes into the hash."""
        self._data += data

    def finish(self) -> int:
        """Return the 64-bit hash of everything written so far."""
        k0, k1 = self._keys
        v0 = k0 ^ 0x736F6D6570736575
        v1 = k1 ^ 0x646F72616E646F6D
        v2 = k0 ^ 0x6C7967656E657261
        v3 = k1 ^ 0x7465646279746573
        data = bytes(self._data)
        full = len(data) - len(data) % 8
        for (word,) in struct.iter_unpack("<Q", data[:full]):
            v3 ^= word
            v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
            v0 ^= word
        last = ((len(data) & 0xFF) << 56) | int.from_bytes(data[full:], "little")
        v3 ^= last
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
        v0 ^= last
        v2 ^= 0xFF
        for _ in range(3):
            v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
        return v0 ^ v1 ^ v2 ^ v3


@dataclass(frozen=True, eq=False)
class NodeHash:
    """A hash of a node's state; a missing hash never equals anything."""

    value: int | None = None

    @classmethod
    def hashed(cls, value: int) -> NodeHash:
        if not 0 <= value <= _MASK:
            raise ValueError(f"hash must be an unsigned 64-bit integer, got {value}")
        return cls(value)

    @classmethod
    def not_hashed(cls) -> NodeHash:
        return cls(None)

    def is_hashed(self) -> bool:
        return self.value is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeHash):
            return NotImplemented
        return self.value is not None and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return "NotHashed" if self.value is None else f"Hashed({self.value})"


@runtime_checkable
class UpdateInput(Protocol):
    """A value that changes in place when an input node receives an update."""

    def update_mut(self, update: Any) -> None: ...


@runtime_checkable
class IsDirty(Protocol):
    """Resolved dependencies that know whether they changed since last seen."""

    def is_dirty(self) -> bool: ...


def _feed_int(value: int, hasher: Hasher) -> None:
    if -_I64 <= value < _I64:
        hasher.write(value.to_bytes(8, "little", signed=True))
    elif -_I128 <= value < _I128:
        hasher.write(value.to_bytes(16, "little", signed=True))
    else:
        raw = value.to_bytes((value.bit_length() + 8) // 8, "little", signed=True)
        hasher.write(len(raw).to_bytes(8, "little"))
        hasher.write(raw)


def _feed(value: Any, hasher: Hasher) -> None:
    if value is None:
        return
    if isinstance(value, bool):
        hasher.write(bytes([value]))
    elif isinstance(value, int):
        _feed_int(value, hasher)
    elif isinstance(value, str):
        hasher.write(value.encode("utf-8") + b"\xff")
    elif isinstance(value, (bytes, bytearray)):
        hasher.write(len(value).to_bytes(8, "little"))
        hasher.write(value)
    elif isinstance(value, tuple):
        for item in value:
            _feed(item, hasher)
    else:
        raise TypeError(f"cannot hash node value of type {type(value).__name__}")


def hash_value(value: Any, hasher: Hasher) -> NodeHash:
    """Hash a node value, using its own ``hash_value`` method if it has one."""
    method = getattr(value, "hash_value", None)
    if callable(method) and not isinstance(value, type):
        return method(hasher)
    _feed(value, hasher)
    return NodeHash.hashed(hasher.finish())


def node_name(value: Any) -> str:
    """The display name of a node value, operation or dependency group."""
    name = getattr(value, "node_name", None)
    if isinstance(name, str):
        return name
    if isinstance(value, type) or inspect.isroutine(value):
        return value.__name__
    return type(value).__name__


def clean(value: Any) -> None:
    """Reset any temporary change-tracking state held by a value."""
    method = getattr(value, "clean", None)
    if callable(method) and not isinstance(value, type):
        method()


def apply_update(value: Any, update: Any) -> Any:
    """Apply an input update and return the resulting value.

    Values with an ``update_mut`` method change in place; anything else is
    simply replaced by the update.
    """
    if isinstance(value, UpdateInput) and not isinstance(value, type):
        value.update_mut(update)
        return value
    return update


class _IdCounter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next = 0

    def take(self) -> int:
        with self._lock:
            current = self._next
            self._next += 1
            return current

    def reset(self) -> None:
        with self._lock:
            self._next = 0


_NODE_IDS = _IdCounter()


def next_node_id() -> int:
    """Return a process-wide unique node id."""
    return _NODE_IDS.take()


def reset_node_id() -> None:
    """Restart node ids from zero; only safe when no other graph is alive."""
    _NODE_IDS.reset()


class NodeState:
    """A value together with the hash last computed for it."""

    __slots__ = ("node_hash", "value")

    def __init__(self, value: Any) -> None:
        self.node_hash = NodeHash.not_hashed()
        self.value = value

    def update_node_hash(self, hasher: Hasher) -> None:
        self.node_hash = hash_value(self.value, hasher)

    def hash_value(self, hasher: Hasher) -> NodeHash:
        return self.node_hash

    def clean(self) -> None:
        clean(self.value)

    @property
    def node_name(self) -> str:
        return node_name(self.value)

    def __repr__(self) -> str:
        return f"NodeState(node_hash={self.node_hash!r}, value={self.value!r})"


class _WriteGuard:
    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value


class StateCell:
    """A value shared by many readers or one writer at a time."""

    def __init__(self, value: Any) -> None:
        self._value = value
        self._readers = 0
        self._writing = False

    @contextmanager
    def borrow(self) -> Iterator[Any]:
        """Read the value; raises BorrowError while it is being written."""
        if self._writing:
            raise BorrowError()
        self._readers += 1
        try:
            yield self._value
        finally:
            self._readers -= 1

    @contextmanager
    def borrow_mut(self) -> Iterator[_WriteGuard]:
        """Write the value through the guard's ``value`` attribute.

        Raises BorrowMutError while the value is read or written elsewhere.
        """
        if self._writing or self._readers:
            raise BorrowMutError()
        self._writing = True
        guard = _WriteGuard(self._value)
        try:
            yield guard
        finally:
            self._value = guard.value
            self._writing = False

    def __repr__(self) -> str:
        return f"StateCell({self._value!r})"