"""Type definitions for the typed_props library."""

from __future__ import annotations

import array
import collections.abc
import datetime
import decimal
import struct
import threading
import typing
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from types import UnionType
from typing import Any


class PrimitiveType(Enum):
    """Built-in primitive types supported by the type system."""

    BOOLEAN = "boolean"
    CHARACTER = "character"
    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    @property
    def size_bytes(self) -> int:
        """Return the size in bytes for this primitive type."""
        return struct.calcsize(self.struct_format)

    @property
    def struct_format(self) -> str:
        """Return the little-endian struct format for this primitive type."""
        formats = {
            PrimitiveType.BOOLEAN: "<?",
            PrimitiveType.CHARACTER: "<I",  # Unicode code point
            PrimitiveType.INT8: "<b",
            PrimitiveType.UINT8: "<B",
            PrimitiveType.INT16: "<h",
            PrimitiveType.UINT16: "<H",
            PrimitiveType.INT32: "<i",
            PrimitiveType.UINT32: "<I",
            PrimitiveType.INT64: "<q",
            PrimitiveType.UINT64: "<Q",
            PrimitiveType.FLOAT32: "<f",
            PrimitiveType.FLOAT64: "<d",
        }
        return formats[self]

    @property
    def is_integer(self) -> bool:
        return self.value.startswith(("int", "uint"))

    @property
    def is_float(self) -> bool:
        return self in (PrimitiveType.FLOAT32, PrimitiveType.FLOAT64)


# Mapping from type name strings to PrimitiveType enum values
PRIMITIVE_TYPE_NAMES: dict[str, PrimitiveType] = {pt.value: pt for pt in PrimitiveType}

# array.array typecodes and the primitive each one stores
ARRAY_TYPECODES: dict[str, PrimitiveType] = {
    "b": PrimitiveType.INT8,
    "B": PrimitiveType.UINT8,
    "h": PrimitiveType.INT16,
    "H": PrimitiveType.UINT16,
    "i": PrimitiveType.INT32,
    "I": PrimitiveType.UINT32,
    "l": PrimitiveType.INT64,
    "L": PrimitiveType.UINT64,
    "q": PrimitiveType.INT64,
    "Q": PrimitiveType.UINT64,
    "f": PrimitiveType.FLOAT32,
    "d": PrimitiveType.FLOAT64,
    "u": PrimitiveType.CHARACTER,
}

# Names an unresolved string hint may use: builtins and common typing forms
_HINT_NAMESPACE: dict[str, Any] = {
    "int": int,
    "float": float,
    "str": str,
    "bool": bool,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "Any": Any,
    "Optional": typing.Optional,
    "Union": typing.Union,
    "List": typing.List,
    "Dict": typing.Dict,
    "Tuple": typing.Tuple,
    "Decimal": decimal.Decimal,
}


def type_range(primitive: PrimitiveType) -> tuple[int, int]:
    """Return the inclusive (min, max) range of an integer primitive."""
    if not primitive.is_integer:
        raise ValueError(f"'{primitive.value}' is not an integer type")
    bits = primitive.size_bytes * 8
    if primitive.value.startswith("uint"):
        return 0, (1 << bits) - 1
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def qualified_name(cls: type) -> str:
    """Return the registry name used for an arbitrary Python class."""
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


@dataclass
class TypeDefinition:
    """Base class for all type definitions."""

    name: str

    @property
    def python_type(self) -> type:
        """Return the Python type that values of this type are stored as."""
        return object

    @property
    def is_primitive(self) -> bool:
        """Return whether this type is a primitive type."""
        return False

    @property
    def is_array(self) -> bool:
        """Return whether this type is a fixed-size array type."""
        return False

    @property
    def is_collection(self) -> bool:
        """Return whether this type is an ordered, growable collection."""
        return False

    @property
    def is_map(self) -> bool:
        """Return whether this type is a string-keyed map."""
        return False

    @property
    def is_enum(self) -> bool:
        """Return whether this type is an enum type."""
        return False

    @property
    def is_indexed(self) -> bool:
        """Return whether values of this type support positional access."""
        return self.is_array or self.is_collection

    def resolve_base_type(self) -> TypeDefinition:
        """Resolve through aliases to get the underlying type."""
        return self

    def is_instance(self, value: Any) -> bool:
        """Return whether value can be stored without conversion."""
        return isinstance(value, self.python_type)

    def zero_value(self) -> Any:
        """Return the value used when a conversion has to fall back to a default."""
        return None


@dataclass
class PrimitiveTypeDefinition(TypeDefinition):
    """Type definition wrapping a primitive type."""

    primitive: PrimitiveType

    @property
    def python_type(self) -> type:
        if self.primitive == PrimitiveType.BOOLEAN:
            return bool
        if self.primitive == PrimitiveType.CHARACTER:
            return str
        if self.primitive.is_float:
            return float
        return int

    @property
    def is_primitive(self) -> bool:
        return True

    def is_instance(self, value: Any) -> bool:
        primitive = self.primitive
        if primitive == PrimitiveType.BOOLEAN:
            return isinstance(value, bool)
        if primitive == PrimitiveType.CHARACTER:
            return isinstance(value, str) and len(value) == 1
        if primitive == PrimitiveType.FLOAT64:
            return isinstance(value, float)
        if primitive == PrimitiveType.FLOAT32:
            # Only values that survive a float32 round trip are already float32
            if not isinstance(value, float):
                return False
            try:
                return struct.unpack("<f", struct.pack("<f", value))[0] == value
            except OverflowError:
                return False
        if not isinstance(value, int) or isinstance(value, bool):
            return False
        min_val, max_val = type_range(primitive)
        return min_val <= value <= max_val

    def zero_value(self) -> Any:
        if self.primitive == PrimitiveType.BOOLEAN:
            return False
        if self.primitive == PrimitiveType.CHARACTER:
            return " "
        if self.primitive.is_float:
            return 0.0
        return 0


@dataclass
class StringTypeDefinition(TypeDefinition):
    """Built-in string type."""

    @property
    def python_type(self) -> type:
        return str


@dataclass
class ScalarTypeDefinition(TypeDefinition):
    """A non-primitive scalar (bigint, decimal, dates, paths) backed by a Python class."""

    scalar_type: type = object
    excludes: tuple[type, ...] = ()
    zero: Any = None

    @property
    def python_type(self) -> type:
        return self.scalar_type

    def is_instance(self, value: Any) -> bool:
        return isinstance(value, self.scalar_type) and not isinstance(value, self.excludes)

    def zero_value(self) -> Any:
        return self.zero


@dataclass
class ArrayTypeDefinition(TypeDefinition):
    """Type definition for fixed-size array types (e.g., int32[]).

    Arrays are stored as Python lists (or tuples / array.array values) and
    never grow on out-of-bounds writes.
    """

    element_type: TypeDefinition

    @property
    def python_type(self) -> type:
        return list

    @property
    def is_array(self) -> bool:
        return True

    def is_instance(self, value: Any) -> bool:
        if not isinstance(value, (list, tuple, array.array)):
            return False
        return all(v is None or self.element_type.is_instance(v) for v in value)

    def zero_value(self) -> Any:
        return []


@dataclass
class ListTypeDefinition(TypeDefinition):
    """Type definition for ordered, mutable collections (e.g., list[string])."""

    element_type: TypeDefinition

    @property
    def python_type(self) -> type:
        return list

    @property
    def is_collection(self) -> bool:
        return True

    def is_instance(self, value: Any) -> bool:
        if not isinstance(value, list):
            return False
        return all(v is None or self.element_type.is_instance(v) for v in value)

    def zero_value(self) -> Any:
        return []


@dataclass
class MapTypeDefinition(TypeDefinition):
    """Type definition for string-keyed maps (e.g., map[int32])."""

    value_type: TypeDefinition

    @property
    def python_type(self) -> type:
        return dict

    @property
    def is_map(self) -> bool:
        return True

    def is_instance(self, value: Any) -> bool:
        if not isinstance(value, collections.abc.Mapping):
            return False
        return all(v is None or self.value_type.is_instance(v) for v in value.values())

    def zero_value(self) -> Any:
        return {}


@dataclass
class EnumTypeDefinition(TypeDefinition):
    """Type definition for a Python enum class."""

    enum_type: type[Enum]

    @property
    def python_type(self) -> type:
        return self.enum_type

    @property
    def is_enum(self) -> bool:
        return True


@dataclass
class ObjectTypeDefinition(TypeDefinition):
    """Type definition for an arbitrary Python class ("object" accepts anything)."""

    object_type: type = object

    @property
    def python_type(self) -> type:
        return self.object_type


@dataclass
class AliasTypeDefinition(TypeDefinition):
    """Type definition for a user-defined name of another type."""

    base_type: TypeDefinition

    @property
    def python_type(self) -> type:
        return self.base_type.python_type

    @property
    def is_primitive(self) -> bool:
        return self.base_type.is_primitive

    @property
    def is_array(self) -> bool:
        return self.base_type.is_array

    @property
    def is_collection(self) -> bool:
        return self.base_type.is_collection

    @property
    def is_map(self) -> bool:
        return self.base_type.is_map

    @property
    def is_enum(self) -> bool:
        return self.base_type.is_enum

    def resolve_base_type(self) -> TypeDefinition:
        """Resolve through aliases to get the underlying type."""
        return self.base_type.resolve_base_type()

    def is_instance(self, value: Any) -> bool:
        return self.base_type.is_instance(value)

    def zero_value(self) -> Any:
        return self.base_type.zero_value()


def element_type_of(type_def: TypeDefinition) -> TypeDefinition | None:
    """Return the element type of an array or list type, or the value type of a map."""
    base = type_def.resolve_base_type()
    if isinstance(base, (ArrayTypeDefinition, ListTypeDefinition)):
        return base.element_type
    if isinstance(base, MapTypeDefinition):
        return base.value_type
    return None


class TypeRegistry:
    """Registry of all known types, including types derived from Python hints."""

    def __init__(self) -> None:
        self._types: dict[str, TypeDefinition] = {}
        self._register_builtins()

    def _register_builtins(self) -> None:
        """Register all primitive and scalar types."""
        for pt in PrimitiveType:
            self._types[pt.value] = PrimitiveTypeDefinition(name=pt.value, primitive=pt)
        self._types["string"] = StringTypeDefinition(name="string")
        self._types["bigint"] = ScalarTypeDefinition(name="bigint", scalar_type=int, excludes=(bool,), zero=0)
        self._types["decimal"] = ScalarTypeDefinition(
            name="decimal", scalar_type=decimal.Decimal, zero=decimal.Decimal(0)
        )
        self._types["datetime"] = ScalarTypeDefinition(name="datetime", scalar_type=datetime.datetime)
        self._types["date"] = ScalarTypeDefinition(
            name="date", scalar_type=datetime.date, excludes=(datetime.datetime,)
        )
        self._types["time"] = ScalarTypeDefinition(name="time", scalar_type=datetime.time)
        self._types["path"] = ScalarTypeDefinition(name="path", scalar_type=PurePath)
        self._types["object"] = ObjectTypeDefinition(name="object", object_type=object)

    def register(self, type_def: TypeDefinition) -> None:
        """Register a type definition."""
        if type_def.name in self._types:
            raise ValueError(f"Type '{type_def.name}' is already defined")
        self._types[type_def.name] = type_def

    def define_alias(self, name: str, base: TypeDefinition | str) -> AliasTypeDefinition:
        """Register 'name' as an alias of an existing type."""
        alias = AliasTypeDefinition(name=name, base_type=self.resolve(base))
        self.register(alias)
        return alias

    def get(self, name: str) -> TypeDefinition | None:
        """Get a type by name, deriving array, list and map types on demand."""
        type_def = self._types.get(name)
        if type_def is not None:
            return type_def
        if name.endswith("[]") and len(name) > 2:
            if self.get(name[:-2]) is None:
                return None
            return self.get_array_type(name[:-2])
        for prefix, factory in (("list[", self.get_list_type), ("map[", self.get_map_type)):
            if name.startswith(prefix) and name.endswith("]"):
                inner = name[len(prefix):-1]
                if self.get(inner) is None:
                    return None
                return factory(inner)
        return None

    def get_or_raise(self, name: str) -> TypeDefinition:
        """Get a type by name, raising if not found."""
        type_def = self.get(name)
        if type_def is None:
            raise KeyError(f"Type '{name}' not found")
        return type_def

    def _element(self, element: TypeDefinition | str) -> TypeDefinition:
        if isinstance(element, TypeDefinition):
            return element
        return self.get_or_raise(element)

    def get_array_type(self, element: TypeDefinition | str) -> ArrayTypeDefinition:
        """Get or create an array type for the given element type."""
        element_type = self._element(element)
        array_name = f"{element_type.name}[]"
        existing = self._types.get(array_name)
        if existing is not None:
            if not isinstance(existing, ArrayTypeDefinition):
                raise TypeError(f"Type '{array_name}' exists but is not an array type")
            return existing

        array_type = ArrayTypeDefinition(name=array_name, element_type=element_type)
        self._types[array_name] = array_type
        return array_type

    def get_list_type(self, element: TypeDefinition | str) -> ListTypeDefinition:
        """Get or create a list type for the given element type."""
        element_type = self._element(element)
        list_name = f"list[{element_type.name}]"
        existing = self._types.get(list_name)
        if existing is not None:
            if not isinstance(existing, ListTypeDefinition):
                raise TypeError(f"Type '{list_name}' exists but is not a list type")
            return existing

        list_type = ListTypeDefinition(name=list_name, element_type=element_type)
        self._types[list_name] = list_type
        return list_type

    def get_map_type(self, value: TypeDefinition | str) -> MapTypeDefinition:
        """Get or create a map type for the given value type."""
        value_type = self._element(value)
        map_name = f"map[{value_type.name}]"
        existing = self._types.get(map_name)
        if existing is not None:
            if not isinstance(existing, MapTypeDefinition):
                raise TypeError(f"Type '{map_name}' exists but is not a map type")
            return existing

        map_type = MapTypeDefinition(name=map_name, value_type=value_type)
        self._types[map_name] = map_type
        return map_type

    def get_class_type(self, cls: type) -> TypeDefinition:
        """Get or create the definition for an arbitrary Python class."""
        name = qualified_name(cls)
        existing = self._types.get(name)
        if existing is not None:
            return existing
        if issubclass(cls, Enum):
            type_def: TypeDefinition = EnumTypeDefinition(name=name, enum_type=cls)
        else:
            type_def = ObjectTypeDefinition(name=name, object_type=cls)
        self._types[name] = type_def
        return type_def

    def resolve(self, spec: TypeDefinition | str | Any) -> TypeDefinition:
        """Resolve a definition, a type name or a Python type hint to a definition."""
        if isinstance(spec, TypeDefinition):
            return spec
        if isinstance(spec, str):
            return self.get_or_raise(spec)
        return self.from_hint(spec)

    def from_hint(self, hint: Any) -> TypeDefinition:
        """Map a Python type hint to a type definition."""
        if hint is None or hint is Any or hint is type(None):
            return self._types["object"]
        if isinstance(hint, str):
            # Unresolved forward reference: a type name, or a hint over builtin names
            type_def = self.get(hint)
            if type_def is not None:
                return type_def
            try:
                evaluated = eval(hint, {"__builtins__": {}}, _HINT_NAMESPACE)
            except (NameError, AttributeError, SyntaxError, TypeError):
                return self._types["object"]
            if isinstance(evaluated, str):
                return self._types["object"]
            return self.from_hint(evaluated)
        if isinstance(hint, typing.ForwardRef):
            return self.from_hint(hint.__forward_arg__)

        origin = typing.get_origin(hint)
        args = typing.get_args(hint)

        if origin is typing.Annotated:
            for meta in args[1:]:
                if isinstance(meta, TypeDefinition):
                    return meta
                if isinstance(meta, str):
                    return self.get_or_raise(meta)
            return self.from_hint(args[0])

        if origin is typing.Union or origin is UnionType:
            members = [a for a in args if a is not type(None)]
            if len(members) == 1:
                return self.from_hint(members[0])
            return self._types["object"]

        if origin is not None:
            if origin is tuple:
                if len(args) == 2 and args[1] is Ellipsis:
                    return self.get_array_type(self.from_hint(args[0]))
                return self.get_array_type("object")
            if isinstance(origin, type) and issubclass(origin, collections.abc.Mapping):
                value_hint = args[1] if len(args) == 2 else None
                return self.get_map_type(self.from_hint(value_hint))
            if isinstance(origin, type) and issubclass(origin, collections.abc.Sequence):
                return self.get_list_type(self.from_hint(args[0] if args else None))
            if origin is typing.ClassVar:
                return self.from_hint(args[0] if args else None)
            return self._types["object"]

        if not isinstance(hint, type):
            return self._types["object"]
        return self._from_class(hint)

    def _from_class(self, cls: type) -> TypeDefinition:
        # IntEnum and str-mixin enums are still enums
        if issubclass(cls, Enum):
            return self.get_class_type(cls)
        # bool before int, datetime before date: both are subclasses
        simple: list[tuple[type, str]] = [
            (bool, "boolean"),
            (int, "int64"),
            (float, "float64"),
            (str, "string"),
            (decimal.Decimal, "decimal"),
            (datetime.datetime, "datetime"),
            (datetime.date, "date"),
            (datetime.time, "time"),
            (PurePath, "path"),
        ]
        for py_type, name in simple:
            if issubclass(cls, py_type):
                return self._types[name]
        if issubclass(cls, array.array) or issubclass(cls, tuple):
            return self.get_array_type("object")
        if issubclass(cls, collections.abc.Mapping):
            return self.get_map_type("object")
        if issubclass(cls, collections.abc.MutableSequence):
            return self.get_list_type("object")
        if cls is object:
            return self._types["object"]
        return self.get_class_type(cls)

    def for_value(self, value: Any) -> TypeDefinition:
        """Infer a type definition from a runtime value."""
        if value is None:
            return self._types["object"]
        if isinstance(value, array.array):
            primitive = ARRAY_TYPECODES.get(value.typecode)
            return self.get_array_type(primitive.value if primitive else "object")
        return self._from_class(type(value))

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._types.keys())

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None


_default_types: TypeRegistry | None = None
_default_types_lock = threading.Lock()


def default_type_registry() -> TypeRegistry:
    """Return the process-wide type registry, creating it on first use."""
    global _default_types
    if _default_types is None:
        with _default_types_lock:
            if _default_types is None:
                _default_types = TypeRegistry()
    return _default_types
