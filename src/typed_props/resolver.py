"""Property path resolution: read, write, copy, describe and populate."""

from __future__ import annotations

import collections.abc
import logging
from typing import Any

from typed_props.adapters import ContainerAdapter, PropertyDescriptor, adapter_for
from typed_props.conversion import ConverterRegistry, current_registry
from typed_props.errors import (
    CopyError,
    InvalidArgumentError,
    NestedNullError,
    PathParseError,
    PropertyNotFoundError,
)
from typed_props.parsing.path_parser import parse_path
from typed_props.path import PropertyPath, Segment, format_path
from typed_props.types import ObjectTypeDefinition, TypeDefinition, element_type_of

logger = logging.getLogger(__name__)


def _is_scalar(type_def: TypeDefinition | None) -> bool:
    if type_def is None or type_def.is_indexed or type_def.is_map:
        return False
    return not isinstance(type_def.resolve_base_type(), ObjectTypeDefinition)


class PropertyResolver:
    """Reads and writes values addressed by property paths.

    Paths are evaluated left to right; each segment picks the adapter for
    the value produced by the previous one. Values written to a property
    whose declared type they do not match are converted with the converter
    registry (the current one when none is given).

    Example:
        resolver = PropertyResolver(lenient=False)
        resolver.set(order, "customer.address.zip", "02134")
        resolver.get(order, "lines[0].sku")
        resolver.get(order, "attributes(gift wrap)")
    """

    def __init__(self, registry: ConverterRegistry | None = None, *, lenient: bool = True) -> None:
        self._registry = registry
        self.lenient = lenient

    @property
    def registry(self) -> ConverterRegistry:
        if self._registry is not None:
            return self._registry
        return current_registry()

    # --- Reading ---

    @staticmethod
    def _require_container(container: Any) -> None:
        if container is None:
            raise InvalidArgumentError("No container specified")

    def _read_segment(self, adapter: ContainerAdapter, container: Any, segment: Segment) -> Any:
        if segment.index is not None:
            return adapter.read_indexed(container, segment.name, segment.index)
        if segment.key is not None:
            return adapter.read_mapped(container, segment.name, segment.key)
        return adapter.read_simple(container, segment.name)

    def _walk(self, container: Any, path: PropertyPath, null_safe: bool) -> Any:
        current = container
        for position, segment in enumerate(path):
            if current is None:
                if null_safe:
                    return None
                raise NestedNullError(format_path(path.segments[:position]), str(path))
            try:
                current = self._read_segment(adapter_for(current), current, segment)
            except NestedNullError as exc:
                # Indexed read of a property that holds no sequence
                if null_safe:
                    return None
                prefix = path.segments[:position] + (Segment(segment.name),)
                raise NestedNullError(format_path(prefix), str(path)) from exc
        return current

    def get(self, container: Any, path: str | PropertyPath, *, null_safe: bool = False) -> Any:
        """Return the value at 'path'.

        An intermediate None raises NestedNullError, or makes the whole
        lookup return None when null_safe is set.
        """
        self._require_container(container)
        return self._walk(container, parse_path(path), null_safe)

    def get_string(self, container: Any, path: str | PropertyPath) -> str | None:
        """Return the value at 'path' converted to text."""
        return self.registry.convert_to_string(self.get(container, path))

    def _parent(self, container: Any, path: PropertyPath) -> Any:
        self._require_container(container)
        parent_path = path.parent
        if parent_path is None:
            return container
        parent = self._walk(container, parent_path, null_safe=False)
        if parent is None:
            raise NestedNullError(str(parent_path), str(path))
        return parent

    # --- Types and descriptors ---

    @staticmethod
    def _segment_type(descriptor: PropertyDescriptor, segment: Segment) -> TypeDefinition | None:
        if segment.index is None and segment.key is None:
            return descriptor.type_def
        content_type = element_type_of(descriptor.type_def)
        if content_type is None:
            return None
        if segment.key is not None and not descriptor.type_def.is_map:
            return None
        if segment.index is not None and not descriptor.type_def.is_indexed:
            return None
        return content_type

    def get_descriptor(self, container: Any, path: str | PropertyPath) -> PropertyDescriptor | None:
        """Return the descriptor of the property named by the last segment."""
        parsed = parse_path(path)
        parent = self._parent(container, parsed)
        return adapter_for(parent).find_descriptor(parent, parsed.last.name)

    def get_property_type(self, container: Any, path: str | PropertyPath) -> TypeDefinition | None:
        """Return the declared type at 'path', or None if it cannot be determined.

        Indexed segments report the element type, mapped segments the value type.
        """
        parsed = parse_path(path)
        descriptor = self.get_descriptor(container, parsed)
        if descriptor is None:
            return None
        return self._segment_type(descriptor, parsed.last)

    def is_readable(self, container: Any, path: str | PropertyPath) -> bool:
        try:
            descriptor = self.get_descriptor(container, path)
        except (PropertyNotFoundError, NestedNullError):
            return False
        return descriptor is not None and descriptor.readable

    def is_writable(self, container: Any, path: str | PropertyPath) -> bool:
        try:
            descriptor = self.get_descriptor(container, path)
        except (PropertyNotFoundError, NestedNullError):
            return False
        return descriptor is not None and descriptor.writable

    # --- Writing ---

    def _coerce(self, value: Any, type_def: TypeDefinition | None) -> Any:
        if value is None or type_def is None or type_def.is_instance(value):
            return value
        return self.registry.convert(value, type_def, lenient=self.lenient)

    def _write(self, container: Any, segment: Segment, value: Any) -> None:
        adapter = adapter_for(container)
        descriptor = adapter.find_descriptor(container, segment.name)
        if descriptor is None:
            raise PropertyNotFoundError(segment.name, container)
        value = self._coerce(value, self._segment_type(descriptor, segment))
        if segment.index is not None:
            adapter.write_indexed(container, segment.name, segment.index, value)
        elif segment.key is not None:
            adapter.write_mapped(container, segment.name, segment.key, value)
        else:
            adapter.write_simple(container, segment.name, value)

    def set(self, container: Any, path: str | PropertyPath, value: Any) -> None:
        """Write 'value' at 'path', converting it to the declared type if needed.

        None is written as-is.
        """
        parsed = parse_path(path)
        parent = self._parent(container, parsed)
        logger.debug("Setting '%s' on %s", parsed, type(parent).__name__)
        self._write(parent, parsed.last, value)

    # --- Bulk operations ---

    def copy(self, destination: Any, source: Any) -> None:
        """Copy every readable source property the destination can write.

        Properties missing from the destination, or read-only there, are
        skipped. Any exception raised while reading or writing a property is
        collected, and all of them are raised together as CopyError after
        the remaining properties have been copied.
        """
        if destination is None:
            raise InvalidArgumentError("No destination container specified")
        if source is None:
            raise InvalidArgumentError("No source container specified")

        source_adapter = adapter_for(source)
        destination_adapter = adapter_for(destination)
        failures: dict[str, Exception] = {}
        for descriptor in source_adapter.describe(source):
            name = descriptor.name
            if not descriptor.readable:
                continue
            target = destination_adapter.find_descriptor(destination, name)
            if target is None or not target.writable:
                logger.debug("Skipping '%s': not writable on %s", name, type(destination).__name__)
                continue
            try:
                value = source_adapter.read_simple(source, name)
                self._write(destination, Segment(name), value)
            except Exception as exc:
                logger.debug("Failed to copy '%s': %s", name, exc)
                failures[name] = exc
        if failures:
            raise CopyError(failures)

    def describe_all(self, container: Any) -> dict[str, str | None]:
        """Return every readable property converted to text."""
        self._require_container(container)
        adapter = adapter_for(container)
        return {
            descriptor.name: self.registry.convert_to_string(
                adapter.read_simple(container, descriptor.name)
            )
            for descriptor in adapter.describe(container)
            if descriptor.readable
        }

    def populate(self, container: Any, values: collections.abc.Mapping[str, Any] | None) -> None:
        """Set every entry of 'values' whose key names a writable property.

        Unknown or read-only targets and keys that are not valid paths are
        skipped. A list value for a non-indexed property contributes its
        first element.
        """
        self._require_container(container)
        if values is None:
            return
        for key, value in values.items():
            if key is None:
                continue
            try:
                parsed = parse_path(key)
                if isinstance(value, (list, tuple)):
                    type_def = self.get_property_type(container, parsed)
                    if _is_scalar(type_def):
                        value = value[0] if value else None
                self.set(container, parsed, value)
            except PathParseError as exc:
                logger.debug("Skipping '%s': %s", key, exc)
            except PropertyNotFoundError as exc:
                logger.debug("Skipping '%s': %s", key, exc)


_default_resolver = PropertyResolver()


def get_property(container: Any, path: str | PropertyPath, *, null_safe: bool = False) -> Any:
    """Read the value at 'path'."""
    return _default_resolver.get(container, path, null_safe=null_safe)


def get_string_property(container: Any, path: str | PropertyPath) -> str | None:
    """Read the value at 'path' as text."""
    return _default_resolver.get_string(container, path)


def set_property(container: Any, path: str | PropertyPath, value: Any) -> None:
    """Write 'value' at 'path' with lenient conversion."""
    _default_resolver.set(container, path, value)


def copy_properties(destination: Any, source: Any) -> None:
    """Copy matching properties from 'source' to 'destination'."""
    _default_resolver.copy(destination, source)


def describe(container: Any) -> dict[str, str | None]:
    """Return every readable property of 'container' as text."""
    return _default_resolver.describe_all(container)


def populate(container: Any, values: collections.abc.Mapping[str, Any] | None) -> None:
    """Set properties of 'container' from a mapping of paths to values."""
    _default_resolver.populate(container, values)
