"""Converter registries: per-instance, process default and context scoped."""

from __future__ import annotations

import array
import collections.abc
import contextvars
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from typed_props.converters import (
    ArrayConverter,
    BooleanConverter,
    CharacterConverter,
    Converter,
    DateTimeConverter,
    DecimalConverter,
    EnumConverter,
    FloatConverter,
    FunctionConverter,
    IntegerConverter,
    PathConverter,
    StringConverter,
    split_elements,
)
from typed_props.errors import ConversionError
from typed_props.types import (
    AliasTypeDefinition,
    MapTypeDefinition,
    ObjectTypeDefinition,
    PrimitiveType,
    TypeDefinition,
    TypeRegistry,
    default_type_registry,
    element_type_of,
)

logger = logging.getLogger(__name__)

# Registry key of the converter shared by all enum types
ENUM_KEY = "enum"

# A TypeDefinition, a type name or a Python type hint
TargetSpec = Any


def _has_zero_value(type_def: TypeDefinition) -> bool:
    """Return whether lenient conversion may fall back to the zero value of a type.

    Object and map targets never do.
    """
    return not isinstance(type_def.resolve_base_type(), (ObjectTypeDefinition, MapTypeDefinition))


class ConverterRegistry:
    """Maps target type names to converters.

    Lookup order for a target is its own name, then the names of the types it
    aliases, then the shared "enum" entry for enum types. Targets without a
    converter fall back to structural conversion: arrays and lists convert
    element by element, maps value by value, and object types accept any
    instance of their Python class.
    """

    def __init__(self, types: TypeRegistry | None = None) -> None:
        self.types = types if types is not None else default_type_registry()
        self._converters: dict[str, Converter] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        integer = IntegerConverter()
        floating = FloatConverter()
        element_converters: dict[str, Converter] = {
            "boolean": BooleanConverter(),
            "character": CharacterConverter(),
        }
        for pt in PrimitiveType:
            if pt.is_integer:
                element_converters[pt.value] = integer
            elif pt.is_float:
                element_converters[pt.value] = floating
        element_converters["string"] = StringConverter()

        for name, converter in element_converters.items():
            self._converters[name] = converter
            self._converters[f"{name}[]"] = ArrayConverter(converter)

        self._converters["bigint"] = integer
        self._converters["decimal"] = DecimalConverter()
        dates = DateTimeConverter()
        for name in ("date", "time", "datetime"):
            self._converters[name] = dates
        self._converters["path"] = PathConverter()
        self._converters[ENUM_KEY] = EnumConverter()

    # --- Registration ---

    def _key(self, target: TargetSpec) -> str:
        if isinstance(target, str):
            return target
        return self.types.resolve(target).name

    def register(
        self, converter: Converter | Callable[[TypeDefinition, Any], Any], target: TargetSpec
    ) -> None:
        """Register a converter for a target type, replacing any previous one.

        Plain callables are called as ``fn(target_type, value)``.
        """
        if not isinstance(converter, Converter):
            if not callable(converter):
                raise TypeError(f"Converter must be callable, got {type(converter).__name__}")
            converter = FunctionConverter(converter)
        key = self._key(target)
        self._converters[key] = converter
        logger.debug("Registered %r for '%s'", converter, key)

    def deregister(self, target: TargetSpec) -> None:
        """Remove the converter registered for a target type, if any."""
        key = self._key(target)
        if self._converters.pop(key, None) is not None:
            logger.debug("Deregistered converter for '%s'", key)

    def deregister_all(self) -> None:
        """Remove all registrations and restore the default converters."""
        self._converters.clear()
        self._register_defaults()
        logger.debug("Restored default converters")

    def lookup(self, target: TargetSpec) -> Converter | None:
        """Return the converter that would be used for a target type."""
        if isinstance(target, str) and target in self._converters:
            return self._converters[target]
        return self._find(self.types.resolve(target))

    def _find(self, type_def: TypeDefinition) -> Converter | None:
        current = type_def
        while True:
            converter = self._converters.get(current.name)
            if converter is not None:
                return converter
            if not isinstance(current, AliasTypeDefinition):
                break
            current = current.base_type
        if current.is_enum:
            return self._converters.get(ENUM_KEY)
        return None

    # --- Conversion ---

    def convert(self, value: Any, target: TargetSpec, *, lenient: bool = False) -> Any:
        """Convert value to the target type.

        Strict conversion raises ConversionError when the value cannot be
        converted. Lenient conversion returns the target's zero value instead,
        except for object and map targets, which always raise.
        """
        type_def = self.types.resolve(target)
        degrades = lenient and _has_zero_value(type_def)
        if value is None:
            return type_def.zero_value() if degrades else None
        try:
            return self._convert(value, type_def)
        except ConversionError as exc:
            if not degrades:
                raise
            logger.debug("Using zero value for '%s': %s", type_def.name, exc)
            return type_def.zero_value()

    def _convert(self, value: Any, type_def: TypeDefinition) -> Any:
        converter = self._find(type_def)
        if converter is not None:
            return converter.convert(type_def, value)

        base = type_def.resolve_base_type()
        if base.is_indexed:
            element_type = element_type_of(base)
            assert element_type is not None
            return [
                None if item is None else self._convert(item, element_type)
                for item in split_elements(value, base)
            ]
        if isinstance(base, MapTypeDefinition):
            if not isinstance(value, collections.abc.Mapping):
                raise ConversionError(value, type_def.name, "not a mapping")
            return {
                str(k): None if v is None else self._convert(v, base.value_type)
                for k, v in value.items()
            }
        if base.is_instance(value):
            return value
        raise ConversionError(value, type_def.name, "no converter registered")

    def convert_to_string(self, value: Any) -> str | None:
        """Convert a value to text.

        Sequences are represented by their first element, or None when empty.
        """
        if isinstance(value, (list, tuple, array.array)):
            if len(value) == 0:
                return None
            value = value[0]
        if value is None:
            return None
        converter = self._converters.get("string")
        if converter is None:
            return str(value)
        result = converter.convert(self.types.get_or_raise("string"), value)
        return result if isinstance(result, str) else str(value)

    def __contains__(self, target: str) -> bool:
        return target in self._converters


# --- Process default and context-scoped registries ---

_default_registry: ConverterRegistry | None = None
_default_registry_lock = threading.Lock()

_scoped_registry: contextvars.ContextVar[ConverterRegistry | None] = contextvars.ContextVar(
    "typed_props_converter_registry", default=None
)


def default_registry() -> ConverterRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = ConverterRegistry()
    return _default_registry


def current_registry() -> ConverterRegistry:
    """Return the registry bound by registry_scope(), or the default registry."""
    registry = _scoped_registry.get()
    if registry is None:
        return default_registry()
    return registry


@contextmanager
def registry_scope(registry: ConverterRegistry | None = None) -> Iterator[ConverterRegistry]:
    """Bind a converter registry to the current context.

    asyncio tasks created inside the block inherit the binding through
    contextvars; other threads keep seeing their own binding. The previous
    binding is restored on exit.

    Example:
        with registry_scope() as registry:
            registry.register(my_converter, "int32")
            set_property(bean, "count", "0x10")
    """
    if registry is None:
        registry = ConverterRegistry()
    token = _scoped_registry.set(registry)
    try:
        yield registry
    finally:
        _scoped_registry.reset(token)


def convert(value: Any, target: TargetSpec, *, lenient: bool = False) -> Any:
    """Convert a value using the current registry."""
    return current_registry().convert(value, target, lenient=lenient)


def convert_to_string(value: Any) -> str | None:
    """Convert a value to text using the current registry."""
    return current_registry().convert_to_string(value)


def register(converter: Converter | Callable[[TypeDefinition, Any], Any], target: TargetSpec) -> None:
    """Register a converter on the current registry."""
    current_registry().register(converter, target)


def deregister(target: TargetSpec) -> None:
    """Remove a converter from the current registry."""
    current_registry().deregister(target)


def deregister_all() -> None:
    """Restore the default converters of the current registry."""
    current_registry().deregister_all()


def lookup(target: TargetSpec) -> Converter | None:
    """Look up a converter on the current registry."""
    return current_registry().lookup(target)
