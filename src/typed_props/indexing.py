"""Bounds-checked element access on sequences and mappings.

All container variants share these helpers, so indexed and mapped access
behaves the same for reflective objects, dynamic beans and wrapped beans.
"""

from __future__ import annotations

import array
import collections.abc
from typing import Any

from typed_props.errors import (
    ArrayIndexOutOfBoundsError,
    CollectionIndexOutOfBoundsError,
    ConversionError,
    InvalidArgumentError,
    NestedNullError,
    PropertyNotWritableError,
)
from typed_props.types import TypeDefinition, element_type_of


def is_indexable(value: Any) -> bool:
    """Return whether value supports positional access."""
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (collections.abc.Sequence, array.array))


def _is_fixed_size(value: Any, type_def: TypeDefinition | None) -> bool:
    if type_def is not None and type_def.is_indexed:
        return type_def.is_array
    return not isinstance(value, list)


def _check_bounds(name: str, value: Any, index: int, type_def: TypeDefinition | None) -> None:
    length = len(value)
    if 0 <= index < length:
        return
    if _is_fixed_size(value, type_def):
        raise ArrayIndexOutOfBoundsError(name, index, length)
    raise CollectionIndexOutOfBoundsError(name, index, length)


def get_element(name: str, value: Any, index: int, type_def: TypeDefinition | None = None) -> Any:
    """Return value[index] for the sequence held by property 'name'."""
    if value is None:
        raise NestedNullError(name)
    if not is_indexable(value):
        raise InvalidArgumentError(f"Property '{name}' is not indexed ({type(value).__name__})")
    _check_bounds(name, value, index, type_def)
    return value[index]


def set_element(
    name: str, value: Any, index: int, element: Any, type_def: TypeDefinition | None = None
) -> None:
    """Replace value[index] in place. Sequences never grow."""
    if value is None:
        raise NestedNullError(name)
    if isinstance(value, tuple):
        raise PropertyNotWritableError(name, message=f"Property '{name}' holds an immutable tuple")
    if not isinstance(value, (collections.abc.MutableSequence, array.array)) or isinstance(
        value, bytearray
    ):
        if is_indexable(value):
            raise PropertyNotWritableError(name, message=f"Property '{name}' is not mutable")
        raise InvalidArgumentError(f"Property '{name}' is not indexed ({type(value).__name__})")
    _check_bounds(name, value, index, type_def)
    try:
        value[index] = element
    except (TypeError, OverflowError) as exc:
        # array.array rejects elements that do not fit its typecode
        raise ConversionError(element, getattr(value, "typecode", type(value).__name__), str(exc)) from exc


def allocate_array(type_def: TypeDefinition, length: int) -> list[Any]:
    """Return a zero-filled array value for an array-typed property."""
    element_type = element_type_of(type_def)
    zero = element_type.zero_value() if element_type is not None else None
    return [zero] * max(length, 0)


def get_mapped(name: str, value: Any, key: str) -> Any:
    """Return value[key], or None when the key or the map itself is absent."""
    if value is None:
        return None
    if not isinstance(value, collections.abc.Mapping):
        raise InvalidArgumentError(f"Property '{name}' is not mapped ({type(value).__name__})")
    return value.get(key)


def set_mapped(name: str, value: Any, key: str, element: Any) -> None:
    """Store value[key] = element in place."""
    if value is None:
        raise NestedNullError(name)
    if not isinstance(value, collections.abc.MutableMapping):
        if isinstance(value, collections.abc.Mapping):
            raise PropertyNotWritableError(name, message=f"Property '{name}' holds a read-only mapping")
        raise InvalidArgumentError(f"Property '{name}' is not mapped ({type(value).__name__})")
    value[key] = element


def contains_mapped(name: str, value: Any, key: str) -> bool:
    """Return whether the map held by property 'name' has 'key'."""
    if value is None:
        return False
    if not isinstance(value, collections.abc.Mapping):
        raise InvalidArgumentError(f"Property '{name}' is not mapped ({type(value).__name__})")
    return key in value


def remove_mapped(name: str, value: Any, key: str) -> None:
    """Remove 'key' from the map held by property 'name'. Unknown keys are ignored."""
    if value is None:
        return
    if not isinstance(value, collections.abc.MutableMapping):
        raise InvalidArgumentError(f"Property '{name}' is not a mutable map ({type(value).__name__})")
    value.pop(key, None)
