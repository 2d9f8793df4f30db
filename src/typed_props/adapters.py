"""Container adapters: uniform property access over the three container shapes.

- ReflectiveAdapter: plain Python objects (properties, annotated fields,
  ``__slots__``, instance attributes) and mappings (keys as properties).
- DynamicAdapter: DynamicBean instances, described by their DynamicClass.
- WrappedAdapter: WrappedBean instances, forwarded to the reflective view of
  the wrapped object.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import functools
import inspect
import logging
import sys
import threading
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator

from typed_props import indexing
from typed_props.dynamic import DynamicBean, LazyDynamicBean, WrappedBean
from typed_props.errors import (
    PropertyNotFoundError,
    PropertyNotReadableError,
    PropertyNotWritableError,
)
from typed_props.types import (
    TypeDefinition,
    TypeRegistry,
    default_type_registry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertyDescriptor:
    """Name, declared type and access rights of one property."""

    name: str
    type_def: TypeDefinition
    readable: bool = True
    writable: bool = True


class ContainerAdapter(ABC):
    """Property access for one container shape.

    Indexed and mapped access default to reading the whole property and
    operating on the returned sequence or mapping in place.
    """

    @abstractmethod
    def describe(self, container: Any) -> list[PropertyDescriptor]:
        """Return the descriptors of all properties of the container."""

    def find_descriptor(self, container: Any, name: str) -> PropertyDescriptor | None:
        """Return the descriptor for 'name', or None if there is no such property."""
        for descriptor in self.describe(container):
            if descriptor.name == name:
                return descriptor
        return None

    def require_descriptor(self, container: Any, name: str) -> PropertyDescriptor:
        descriptor = self.find_descriptor(container, name)
        if descriptor is None:
            raise PropertyNotFoundError(name, container)
        return descriptor

    @abstractmethod
    def read_simple(self, container: Any, name: str) -> Any: ...

    @abstractmethod
    def write_simple(self, container: Any, name: str, value: Any) -> None: ...

    def read_indexed(self, container: Any, name: str, index: int) -> Any:
        descriptor = self.require_descriptor(container, name)
        sequence = self.read_simple(container, name)
        return indexing.get_element(name, sequence, index, descriptor.type_def)

    def write_indexed(self, container: Any, name: str, index: int, value: Any) -> None:
        descriptor = self.require_descriptor(container, name)
        sequence = self.read_simple(container, name)
        if sequence is None and descriptor.type_def.is_array:
            sequence = indexing.allocate_array(descriptor.type_def, index + 1)
            indexing.set_element(name, sequence, index, value, descriptor.type_def)
            self.write_simple(container, name, sequence)
            return
        indexing.set_element(name, sequence, index, value, descriptor.type_def)

    def read_mapped(self, container: Any, name: str, key: str) -> Any:
        return indexing.get_mapped(name, self.read_simple(container, name), key)

    def write_mapped(self, container: Any, name: str, key: str, value: Any) -> None:
        descriptor = self.require_descriptor(container, name)
        mapping = self.read_simple(container, name)
        if mapping is None and descriptor.type_def.is_map:
            mapping = {}
            indexing.set_mapped(name, mapping, key, value)
            self.write_simple(container, name, mapping)
            return
        indexing.set_mapped(name, mapping, key, value)

    def contains_mapped(self, container: Any, name: str, key: str) -> bool:
        return indexing.contains_mapped(name, self.read_simple(container, name), key)

    def remove_mapped(self, container: Any, name: str, key: str) -> None:
        indexing.remove_mapped(name, self.read_simple(container, name), key)


@dataclass
class _ClassInfo:
    """Cached class-level introspection result."""

    descriptors: dict[str, PropertyDescriptor]
    # Names backed by descriptors with code (property, cached_property)
    computed: frozenset[str]


def _is_public(name: str) -> bool:
    return not name.startswith("_")


def _slot_names(klass: type) -> list[str]:
    slots = klass.__dict__.get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return [s for s in slots if _is_public(s)]


def _annotation_scopes(owner: Any) -> Iterator[tuple[dict[str, Any], dict[str, Any], dict[str, Any] | None]]:
    """Yield (annotations, globals, locals) for evaluating each annotation dict of 'owner'."""
    if isinstance(owner, type):
        for klass in reversed(owner.__mro__):
            module = sys.modules.get(klass.__module__)
            # Module names take precedence over class attributes, as in
            # typing.get_type_hints; the class's own name resolves for self-references
            classns = {klass.__name__: klass, **vars(klass)}
            yield inspect.get_annotations(klass), classns, dict(vars(module)) if module is not None else {}
    else:
        yield inspect.get_annotations(owner), getattr(owner, "__globals__", {}), None


def _evaluate_annotation(annotation: Any, globalns: dict[str, Any], localns: dict[str, Any] | None) -> Any:
    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, globalns, localns)
    except (NameError, AttributeError, SyntaxError, TypeError) as exc:
        logger.debug("Leaving annotation %r unresolved: %s", annotation, exc)
        return annotation


class ReflectiveAdapter(ContainerAdapter):
    """Adapter for ordinary Python objects and mappings.

    Properties of a class are discovered by walking its MRO from the base
    class down, so a subclass redefinition replaces the inherited
    descriptor but keeps its position. Class-level results are cached per
    class; instance attributes are added per call.
    """

    def __init__(self, types: TypeRegistry | None = None) -> None:
        self.types = types if types is not None else default_type_registry()
        self._cache: dict[type, _ClassInfo] = {}
        self._lock = threading.Lock()

    def clear_cache(self) -> None:
        """Forget all cached class introspection."""
        with self._lock:
            self._cache.clear()

    # --- Introspection ---

    def _hints(self, owner: Any) -> dict[str, Any]:
        try:
            return typing.get_type_hints(owner, include_extras=True)
        except (NameError, TypeError, AttributeError, SyntaxError) as exc:
            logger.debug("Resolving annotations of %r one at a time: %s", owner, exc)
        # An unresolvable annotation stays a string and affects only its own name
        hints: dict[str, Any] = {}
        for annotations, globalns, localns in _annotation_scopes(owner):
            for name, annotation in annotations.items():
                hints[name] = _evaluate_annotation(annotation, globalns, localns)
        return hints

    def _property_type(self, prop: property) -> TypeDefinition:
        if prop.fget is not None:
            hint = self._hints(prop.fget).get("return")
            if hint is not None:
                return self.types.from_hint(hint)
        if prop.fset is not None:
            hints = self._hints(prop.fset)
            hints.pop("return", None)
            if hints:
                return self.types.from_hint(next(iter(hints.values())))
        return self.types.resolve("object")

    def _class_info(self, cls: type) -> _ClassInfo:
        info = self._cache.get(cls)
        if info is not None:
            return info
        info = self._introspect(cls)
        with self._lock:
            self._cache[cls] = info
        return info

    def _introspect(self, cls: type) -> _ClassInfo:
        hints = self._hints(cls)
        frozen = dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen  # type: ignore[attr-defined]
        descriptors: dict[str, PropertyDescriptor] = {}
        computed: set[str] = set()

        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            own_annotations = inspect.get_annotations(klass)
            for name in own_annotations:
                if not _is_public(name) or typing.get_origin(hints.get(name)) is typing.ClassVar:
                    continue
                if isinstance(klass.__dict__.get(name), (property, functools.cached_property)):
                    continue
                descriptors[name] = PropertyDescriptor(
                    name, self.types.from_hint(hints.get(name)), readable=True, writable=not frozen
                )
                computed.discard(name)
            for name in _slot_names(klass):
                if name not in own_annotations:
                    descriptors[name] = PropertyDescriptor(name, self.types.resolve("object"))
                    computed.discard(name)
            for name, attr in klass.__dict__.items():
                if not _is_public(name):
                    continue
                if isinstance(attr, property):
                    descriptors[name] = PropertyDescriptor(
                        name,
                        self._property_type(attr),
                        readable=attr.fget is not None,
                        writable=attr.fset is not None,
                    )
                    computed.add(name)
                elif isinstance(attr, functools.cached_property):
                    hint = self._hints(attr.func).get("return")
                    descriptors[name] = PropertyDescriptor(name, self.types.from_hint(hint))
                    computed.add(name)

        return _ClassInfo(descriptors=descriptors, computed=frozenset(computed))

    def _members(self, container: Any) -> dict[str, PropertyDescriptor]:
        if isinstance(container, collections.abc.Mapping):
            writable = isinstance(container, collections.abc.MutableMapping)
            return {
                key: PropertyDescriptor(key, self.types.for_value(value), True, writable)
                for key, value in container.items()
                if isinstance(key, str)
            }
        members = dict(self._class_info(type(container)).descriptors)
        instance_dict = getattr(container, "__dict__", None)
        if instance_dict:
            for name, value in instance_dict.items():
                if _is_public(name) and name not in members:
                    members[name] = PropertyDescriptor(name, self.types.for_value(value))
        return members

    # --- ContainerAdapter ---

    def describe(self, container: Any) -> list[PropertyDescriptor]:
        return list(self._members(container).values())

    def find_descriptor(self, container: Any, name: str) -> PropertyDescriptor | None:
        if isinstance(container, collections.abc.Mapping):
            if name in container:
                return PropertyDescriptor(
                    name,
                    self.types.for_value(container[name]),
                    True,
                    isinstance(container, collections.abc.MutableMapping),
                )
            if isinstance(container, collections.abc.MutableMapping):
                # Any key can be added to a mutable mapping
                return PropertyDescriptor(name, self.types.resolve("object"))
            return None
        return self._members(container).get(name)

    def read_simple(self, container: Any, name: str) -> Any:
        if isinstance(container, collections.abc.Mapping):
            return container.get(name)
        descriptor = self.find_descriptor(container, name)
        if descriptor is None:
            raise PropertyNotFoundError(name, container)
        if not descriptor.readable:
            raise PropertyNotReadableError(name, container)
        if name in self._class_info(type(container)).computed:
            return getattr(container, name)
        # Declared fields and slots without a value yet read as None
        return getattr(container, name, None)

    def write_simple(self, container: Any, name: str, value: Any) -> None:
        if isinstance(container, collections.abc.MutableMapping):
            container[name] = value
            return
        descriptor = self.find_descriptor(container, name)
        if descriptor is None:
            raise PropertyNotFoundError(name, container)
        if not descriptor.writable:
            raise PropertyNotWritableError(name, container)
        setattr(container, name, value)


class DynamicAdapter(ContainerAdapter):
    """Adapter for DynamicBean instances."""

    def describe(self, container: DynamicBean) -> list[PropertyDescriptor]:
        return [PropertyDescriptor(p.name, p.type_def) for p in container.dynamic_class.properties()]

    def find_descriptor(self, container: DynamicBean, name: str) -> PropertyDescriptor | None:
        prop = container.dynamic_class.get_property(name)
        if prop is None:
            if isinstance(container, LazyDynamicBean) and container.extensible:
                # Declared on first write
                return PropertyDescriptor(name, container.dynamic_class.types.resolve("object"))
            return None
        return PropertyDescriptor(prop.name, prop.type_def)

    def read_simple(self, container: DynamicBean, name: str) -> Any:
        return container.get(name)

    def write_simple(self, container: DynamicBean, name: str, value: Any) -> None:
        container.set(name, value)

    def read_indexed(self, container: DynamicBean, name: str, index: int) -> Any:
        return container.get_indexed(name, index)

    def write_indexed(self, container: DynamicBean, name: str, index: int, value: Any) -> None:
        container.set_indexed(name, index, value)

    def read_mapped(self, container: DynamicBean, name: str, key: str) -> Any:
        return container.get_mapped(name, key)

    def write_mapped(self, container: DynamicBean, name: str, key: str, value: Any) -> None:
        container.set_mapped(name, key, value)

    def contains_mapped(self, container: DynamicBean, name: str, key: str) -> bool:
        return container.contains(name, key)

    def remove_mapped(self, container: DynamicBean, name: str, key: str) -> None:
        container.remove(name, key)


class WrappedAdapter(ContainerAdapter):
    """Adapter for WrappedBean instances: the reflective view of the wrapped object."""

    def describe(self, container: WrappedBean) -> list[PropertyDescriptor]:
        return container.adapter.describe(container.instance)

    def find_descriptor(self, container: WrappedBean, name: str) -> PropertyDescriptor | None:
        return container.adapter.find_descriptor(container.instance, name)

    def read_simple(self, container: WrappedBean, name: str) -> Any:
        return container.adapter.read_simple(container.instance, name)

    def write_simple(self, container: WrappedBean, name: str, value: Any) -> None:
        container.adapter.write_simple(container.instance, name, value)

    def read_indexed(self, container: WrappedBean, name: str, index: int) -> Any:
        return container.adapter.read_indexed(container.instance, name, index)

    def write_indexed(self, container: WrappedBean, name: str, index: int, value: Any) -> None:
        container.adapter.write_indexed(container.instance, name, index, value)

    def read_mapped(self, container: WrappedBean, name: str, key: str) -> Any:
        return container.adapter.read_mapped(container.instance, name, key)

    def write_mapped(self, container: WrappedBean, name: str, key: str, value: Any) -> None:
        container.adapter.write_mapped(container.instance, name, key, value)

    def contains_mapped(self, container: WrappedBean, name: str, key: str) -> bool:
        return container.adapter.contains_mapped(container.instance, name, key)

    def remove_mapped(self, container: WrappedBean, name: str, key: str) -> None:
        container.adapter.remove_mapped(container.instance, name, key)


_reflective: ReflectiveAdapter | None = None
_reflective_lock = threading.Lock()
_dynamic = DynamicAdapter()
_wrapped = WrappedAdapter()


def default_reflective_adapter() -> ReflectiveAdapter:
    """Return the shared ReflectiveAdapter, creating it on first use."""
    global _reflective
    if _reflective is None:
        with _reflective_lock:
            if _reflective is None:
                _reflective = ReflectiveAdapter()
    return _reflective


def adapter_for(container: Any) -> ContainerAdapter:
    """Pick the adapter for a container's shape."""
    if isinstance(container, WrappedBean):
        return _wrapped
    if isinstance(container, DynamicBean):
        return _dynamic
    return default_reflective_adapter()
