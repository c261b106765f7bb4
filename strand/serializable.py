"""
Serializable mixin for dataclasses.

Provides automatic to_dict()/from_dict() using dataclasses.fields() introspection.
Handles nested Serializable objects, dicts and lists of them, read-only
mappings, and sets (written as sorted lists, read back as sets).

All deserialization is lenient by default: missing fields that have defaults
are silently skipped. This ensures forward-compatibility when older serialized
data lacks newer fields.
"""

import dataclasses
from collections.abc import Mapping
from typing import get_args, get_origin, get_type_hints


class Serializable:
    """Mixin that adds to_dict() and from_dict() to dataclasses.

    Usage:
        @dataclass
        class Entry(Serializable):
            path: str
            tags: set[str] = field(default_factory=set)

        d = Entry("a.txt", {"x"}).to_dict()   # {"path": "a.txt", "tags": ["x"]}
        obj = Entry.from_dict(d)               # Entry(path="a.txt", tags={"x"})
    """

    def to_dict(self) -> dict:
        result = {}
        for f in dataclasses.fields(self):  # type: ignore[arg-type]
            result[f.name] = _serialize(getattr(self, f.name))
        return result

    @classmethod
    def from_dict(cls, d: dict):
        hints = get_type_hints(cls)
        kwargs = {}
        for f in dataclasses.fields(cls):  # type: ignore[arg-type]
            if not f.init or f.name not in d:
                # Missing fields with defaults are skipped; a missing
                # required field makes the constructor raise
                continue
            kwargs[f.name] = _deserialize(d[f.name], hints.get(f.name))
        return cls(**kwargs)


def _serialize(value):
    """Recursively serialize a value."""
    if isinstance(value, Serializable):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_serialize(v) for v in value)
    if isinstance(value, Mapping):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def _deserialize(value, field_type):
    """Deserialize a value according to its type hint."""
    if value is None:
        return None

    actual_type = _unwrap_optional(field_type)
    origin = get_origin(actual_type)
    args = get_args(actual_type)

    # Nested Serializable
    if (
        isinstance(value, dict)
        and isinstance(actual_type, type)
        and issubclass(actual_type, Serializable)
    ):
        return actual_type.from_dict(value)

    # dict[K, V]
    if origin is dict and isinstance(value, dict):
        inner = args[1] if len(args) == 2 else None
        return {k: _deserialize(v, inner) for k, v in value.items()}

    # set[T]
    if origin in (set, frozenset) and isinstance(value, list):
        inner = args[0] if args else None
        return origin(_deserialize(v, inner) for v in value)

    # list[T]
    if origin is list and isinstance(value, list):
        inner = args[0] if args else None
        return [_deserialize(v, inner) for v in value]

    return value


def _unwrap_optional(tp):
    """Unwrap X | None to X."""
    origin = get_origin(tp)
    if origin is type(int | str):  # types.UnionType for X | Y syntax
        args = get_args(tp)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            return non_none[0]
    return tp
