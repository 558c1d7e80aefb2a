"""Dotted-path property access on parameter objects."""

from collections.abc import Mapping, MutableMapping
from datetime import date, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

__all__ = ("SIMPLE_TYPES", "get_property", "has_property", "is_simple_value", "set_property")

SIMPLE_TYPES: "tuple[type[Any], ...]" = (str, bytes, int, float, bool, complex)

_MISSING = object()


def is_simple_value(value: Any) -> bool:
    """Scalars bind as themselves rather than by property name."""
    return value is None or isinstance(value, (*SIMPLE_TYPES, Decimal, date, time, timedelta, UUID))


def _get_one(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, _MISSING)
    return getattr(obj, name, _MISSING)


def has_property(obj: Any, path: str) -> bool:
    current = obj
    for name in path.split("."):
        current = _get_one(current, name)
        if current is _MISSING:
            return False
    return True


def get_property(obj: Any, path: str) -> Any:
    """Read ``a.b.c`` from nested mappings or attributes.

    Raises:
        KeyError: A segment of ``path`` does not exist.
    """
    current = obj
    for name in path.split("."):
        value = _get_one(current, name)
        if value is _MISSING:
            msg = f"There is no property named '{name}' in '{type(current).__name__}'"
            raise KeyError(msg)
        current = value
    return current


def set_property(obj: Any, path: str, value: Any) -> None:
    """Write ``value`` at ``a.b.c`` on nested mappings or attributes."""
    *parents, leaf = path.split(".")
    target = get_property(obj, ".".join(parents)) if parents else obj
    if isinstance(target, MutableMapping):
        target[leaf] = value
    else:
        setattr(target, leaf, value)
