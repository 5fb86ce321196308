"""Declarative node values and operations: names, hashing and cleaning.

:func:`value` equips a class with what a node value needs: a ``node_name``,
a ``hash_value`` method and, unless the class cleans itself, a no-op
``clean``. :func:`operation` names a callable operation class.
"""

from __future__ import annotations

import dataclasses
import struct
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Iterable, Mapping

from .node import Hasher, NodeHash
from .node import hash_value as _hash_node_value

HASH = "hash"
CUSTOM_CLEAN = "custom_clean"
UNHASHABLE = "unhashable"

_STRUCT_ATTRS = frozenset({UNHASHABLE, CUSTOM_CLEAN})
_FIELD_ATTRS = frozenset({HASH})


class AttributeSpecError(ValueError):
    """A value's attribute specification is malformed or contradictory."""


def _unexpected_attribute(attr: str) -> AttributeSpecError:
    return AttributeSpecError(f'Unexpected attribute ""{attr}""')


def _duplicate_attribute() -> AttributeSpecError:
    return AttributeSpecError("Attribute specified more than once")


@dataclass(frozen=True)
class HashLogic:
    """How a value's hash is computed.

    ``HashLogic.STRUCT`` hashes every field, ``HashLogic.of_field(name)``
    hashes a single field and ``HashLogic.UNHASHABLE`` never produces a hash,
    so dependants recompute on every resolution.
    """

    hashed: bool = True
    field: str | None = None

    UNHASHABLE: ClassVar[HashLogic]
    STRUCT: ClassVar[HashLogic]

    @classmethod
    def of_field(cls, name: str) -> HashLogic:
        return cls(hashed=True, field=name)

    def _compute(self, obj: Any, hasher: Hasher) -> NodeHash:
        if not self.hashed:
            return NodeHash.not_hashed()
        target = _fields_of(obj) if self.field is None else getattr(obj, self.field)
        return _hash_node_value(_hashable(target), hasher)


HashLogic.UNHASHABLE = HashLogic(hashed=False)
HashLogic.STRUCT = HashLogic()


@dataclass
class ValueParsedAttrs:
    """The attributes of a value after validation."""

    hashing: HashLogic | None = None
    custom_clean: bool | None = None


def _fields_of(obj: Any) -> tuple[Any, ...]:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return tuple(getattr(obj, f.name) for f in dataclasses.fields(obj))
    return tuple(vars(obj).values())


def _hashable(item: Any) -> Any:
    """Convert containers to forms the node hasher accepts."""
    if isinstance(item, (list, tuple)):
        return tuple(_hashable(i) for i in item)
    if isinstance(item, float):
        return struct.pack("<d", item)
    if isinstance(item, dict):
        return tuple((_hashable(k), _hashable(v)) for k, v in sorted(item.items()))
    if isinstance(item, (set, frozenset)):
        return tuple(sorted(_hashable(i) for i in item))
    if (
        dataclasses.is_dataclass(item)
        and not isinstance(item, type)
        and not callable(getattr(item, "hash_value", None))
    ):
        return _hashable(_fields_of(item))
    return item


def _split_attrs(items: Iterable[str] | str | None, allowed: frozenset[str]) -> list[str]:
    if items is None:
        return []
    if isinstance(items, str):
        items = [items]
    names: list[str] = []
    for item in items:
        parts = [part.strip() for part in item.split(",")]
        if len(parts) > 1 and parts[-1] == "":
            parts.pop()
        for part in parts:
            if not part.isidentifier():
                raise AttributeSpecError("Invalid attribute format")
            if part not in allowed:
                raise _unexpected_attribute(part)
            names.append(part)
    return names


def _field_items(field_attrs: Any) -> list[tuple[str, Any]]:
    if field_attrs is None:
        return []
    if isinstance(field_attrs, Mapping):
        return list(field_attrs.items())
    return [(name, attrs) for name, attrs in field_attrs]


def parse_value_attrs(
    struct_attrs: Iterable[str] | str | None,
    field_attrs: Mapping[str, Iterable[str]] | Iterable[tuple[str, Iterable[str]]] | None,
) -> ValueParsedAttrs:
    """Validate class-level and field-level attributes of a value.

    Class attributes may be ``unhashable`` and ``custom_clean``; field
    attributes may be ``hash``. Each item may hold several comma-separated
    attributes. Hashing may be chosen only once in total.
    """
    struct_names = _split_attrs(struct_attrs, _STRUCT_ATTRS)
    fields = [
        (name, _split_attrs(attrs, _FIELD_ATTRS)) for name, attrs in _field_items(field_attrs)
    ]
    parsed = ValueParsedAttrs()
    for attr in struct_names:
        if attr == UNHASHABLE:
            if parsed.hashing is not None:
                raise _duplicate_attribute()
            parsed.hashing = HashLogic.UNHASHABLE
        else:
            if parsed.custom_clean is not None:
                raise _duplicate_attribute()
            parsed.custom_clean = True
    for name, attrs in fields:
        for _ in attrs:
            if parsed.hashing is not None:
                raise _duplicate_attribute()
            parsed.hashing = HashLogic.of_field(name)
    return parsed


def _clean_noop(self: Any) -> None:
    """Nothing to reset."""


def value(
    cls: type | None = None,
    *,
    attrs: Iterable[str] | str | None = (),
    field_attrs: Mapping[str, Iterable[str]] | None = None,
) -> Any:
    """Make a class usable as a node value.

    Use bare (``@value``) or with attributes
    (``@value(attrs=["unhashable"], field_attrs={"number": ["hash"]})``).
    """

    def decorate(target: type) -> type:
        if not isinstance(target, type):
            raise TypeError("value() decorates classes")
        parsed = parse_value_attrs(attrs, field_attrs)
        hashing = HashLogic.STRUCT if parsed.hashing is None else parsed.hashing
        custom_clean = bool(parsed.custom_clean)

        if hashing.field is not None and dataclasses.is_dataclass(target):
            names = {f.name for f in dataclasses.fields(target)}
            if hashing.field not in names:
                raise AttributeSpecError(f"Unknown field `{hashing.field}`")
        if custom_clean and not callable(getattr(target, "clean", None)):
            raise AttributeSpecError("custom_clean requires the class to define clean()")
        if not custom_clean and "clean" in vars(target):
            raise AttributeSpecError("clean() is defined; mark the value with custom_clean")

        def hash_value(self: Any, hasher: Hasher) -> NodeHash:
            return hashing._compute(self, hasher)

        hash_value.__qualname__ = f"{target.__qualname__}.hash_value"
        target.node_name = target.__name__
        target.hash_value = hash_value
        if not custom_clean:
            target.clean = _clean_noop
        return target

    return decorate if cls is None else decorate(cls)


def operation(cls: type) -> type:
    """Name a callable operation class after itself."""
    if not isinstance(cls, type):
        raise TypeError("operation() decorates classes")
    if not any("__call__" in vars(klass) for klass in cls.__mro__ if klass is not object):
        raise TypeError(f"operation {cls.__name__} must define __call__")
    cls.node_name = cls.__name__
    return cls


_Decorator = Callable[[type], type]