"""Named dependency groups whose resolved edges are read by field name."""

from __future__ import annotations

import keyword
from typing import Any, ClassVar, Iterable

from .dependency import Dependency, DependencyEdge
from .visitor import Resolve, Visitor

MAX_FIELDS = 26


class GroupReference:
    """The resolved edges of a dependency group, read as attributes."""

    fields: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def _build(cls, edges: dict[str, DependencyEdge]) -> GroupReference:
        ref = cls.__new__(cls)
        ref._edges = edges
        return ref

    def is_dirty(self) -> bool:
        return any(edge.is_dirty() for edge in self._edges.values())

    def __getattr__(self, name: str) -> DependencyEdge:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._edges[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._edges.items())
        return f"{type(self).__name__}({inner})"


class DependencyGroup(Resolve):
    """A fixed set of named dependencies resolved together.

    Define concrete groups with :func:`dependencies`; nodes are passed
    positionally in field order, by field name, or both.
    """

    fields: ClassVar[tuple[str, ...]] = ()
    node_name: ClassVar[str] = "DependencyGroup"
    reference_type: ClassVar[type[GroupReference]] = GroupReference

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        if not self.fields:
            raise TypeError("define a group with dependencies() before creating it")
        if len(args) > len(self.fields):
            raise TypeError(
                f"{type(self).__name__} takes {len(self.fields)} dependencies "
                f"but {len(args)} were given"
            )
        bound = dict(zip(self.fields, args))
        for key, node in kwargs.items():
            if key not in self.fields:
                raise TypeError(f"unknown dependency {key!r}")
            if key in bound:
                raise TypeError(f"dependency {key!r} given more than once")
            bound[key] = node
        missing = [name for name in self.fields if name not in bound]
        if missing:
            raise TypeError(f"missing dependencies: {', '.join(missing)}")
        self._dependencies = {name: Dependency(bound[name]) for name in self.fields}

    def resolve(self, visitor: Visitor) -> GroupReference:
        visitor.touch_dependency_group(self.node_name)
        return self.reference_type._build(
            {name: dep.resolve(visitor) for name, dep in self._dependencies.items()}
        )

    def __getattr__(self, name: str) -> Dependency:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._dependencies[name]
        except KeyError:
            raise AttributeError(name) from None


_RESERVED = frozenset(dir(DependencyGroup)) | frozenset(dir(GroupReference))


def _check_identifier(text: str, what: str) -> None:
    if not isinstance(text, str) or not text.isidentifier() or keyword.iskeyword(text):
        raise ValueError(f"{what} must be a valid identifier, got {text!r}")


def dependencies(name: str, field_names: Iterable[str] | str) -> type[DependencyGroup]:
    """Define a dependency group ``<name>Dep`` with the given fields.

    Its resolved form is ``<name>Ref``, whose attributes are the edges.
    """
    _check_identifier(name, "Group name")
    if isinstance(field_names, str):
        field_names = field_names.replace(",", " ").split()
    names = tuple(field_names)
    for field_name in names:
        _check_identifier(field_name, "Field name")
        if field_name.startswith("_") or field_name in _RESERVED:
            raise ValueError(f"Field name {field_name!r} is reserved")
    if len(set(names)) != len(names):
        raise ValueError("Field names must be unique.")
    if len(names) < 2:
        raise ValueError(
            "Dependencies must have at least 2 fields. "
            "Use `Dependency` for a single dependency."
        )
    if len(names) > MAX_FIELDS:
        raise ValueError(f"Dependencies only supports structs with up to {MAX_FIELDS} fields.")

    ref_type = type(f"{name}Ref", (GroupReference,), {"fields": names})
    return type(
        f"{name}Dep",
        (DependencyGroup,),
        {"fields": names, "node_name": f"{name}Dep", "reference_type": ref_type},
    )