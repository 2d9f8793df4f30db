"""Dynamic containers: beans whose properties are declared by a runtime schema."""

from __future__ import annotations

import collections.abc
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from typed_props import indexing
from typed_props.conversion import ConverterRegistry, current_registry
from typed_props.errors import (
    ConversionError,
    InvalidArgumentError,
    PropertyNotFoundError,
)
from typed_props.types import (
    TypeDefinition,
    TypeRegistry,
    default_type_registry,
    element_type_of,
    qualified_name,
)

if TYPE_CHECKING:
    from typed_props.adapters import ReflectiveAdapter


@dataclass(frozen=True)
class DynamicProperty:
    """A named, typed property declared by a DynamicClass."""

    name: str
    type_def: TypeDefinition

    @property
    def is_indexed(self) -> bool:
        return self.type_def.is_indexed

    @property
    def is_mapped(self) -> bool:
        return self.type_def.is_map

    @property
    def content_type(self) -> TypeDefinition | None:
        """Element type of an indexed property, value type of a mapped one."""
        return element_type_of(self.type_def)


class DynamicClass(ABC):
    """Schema of a family of dynamic beans."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def get_property(self, name: str) -> DynamicProperty | None:
        """Return the declared property, or None if there is none."""

    @abstractmethod
    def properties(self) -> list[DynamicProperty]:
        """Return all declared properties in declaration order."""

    @abstractmethod
    def new_instance(self) -> DynamicBean:
        """Create a bean of this class."""


class DynamicBean(ABC):
    """A container whose properties are described by its DynamicClass."""

    @property
    @abstractmethod
    def dynamic_class(self) -> DynamicClass: ...

    @abstractmethod
    def get(self, name: str) -> Any: ...

    @abstractmethod
    def set(self, name: str, value: Any) -> None: ...

    @abstractmethod
    def get_indexed(self, name: str, index: int) -> Any: ...

    @abstractmethod
    def set_indexed(self, name: str, index: int, value: Any) -> None: ...

    @abstractmethod
    def get_mapped(self, name: str, key: str) -> Any: ...

    @abstractmethod
    def set_mapped(self, name: str, key: str, value: Any) -> None: ...

    @abstractmethod
    def contains(self, name: str, key: str) -> bool:
        """Return whether the mapped property 'name' has an entry for 'key'."""

    @abstractmethod
    def remove(self, name: str, key: str) -> None:
        """Remove 'key' from the mapped property 'name'."""


class BasicDynamicClass(DynamicClass):
    """A DynamicClass built from an explicit list of properties.

    Properties may be given as DynamicProperty instances or as
    ``(name, type)`` pairs, where the type is anything TypeRegistry.resolve
    accepts (a definition, a name such as "int32[]" or a Python type hint).
    """

    def __init__(
        self,
        name: str,
        properties: Iterable[DynamicProperty | tuple[str, Any]] = (),
        types: TypeRegistry | None = None,
        bean_class: type[BasicDynamicBean] | None = None,
    ) -> None:
        self._name = name
        self.types = types if types is not None else default_type_registry()
        self.bean_class = bean_class if bean_class is not None else BasicDynamicBean
        self._properties: dict[str, DynamicProperty] = {}
        for prop in properties:
            if not isinstance(prop, DynamicProperty):
                prop_name, type_spec = prop
                prop = DynamicProperty(prop_name, self.types.resolve(type_spec))
            self._properties[prop.name] = prop

    @property
    def name(self) -> str:
        return self._name

    def get_property(self, name: str) -> DynamicProperty | None:
        if name is None:
            raise InvalidArgumentError("No property name specified")
        return self._properties.get(name)

    def properties(self) -> list[DynamicProperty]:
        return list(self._properties.values())

    def new_instance(self) -> BasicDynamicBean:
        return self.bean_class(self)

    def __repr__(self) -> str:
        return f"BasicDynamicClass({self._name!r}, {list(self._properties)})"


class BasicDynamicBean(DynamicBean):
    """Dynamic bean storing its values in a dict.

    Unset primitive properties read as their zero value; other unset
    properties read as None. Values must already match the declared type.
    """

    def __init__(self, dynamic_class: DynamicClass) -> None:
        self._class = dynamic_class
        self._values: dict[str, Any] = {}

    @property
    def dynamic_class(self) -> DynamicClass:
        return self._class

    def _property(self, name: str) -> DynamicProperty:
        prop = self._class.get_property(name)
        if prop is None:
            raise PropertyNotFoundError(name, self)
        return prop

    def get(self, name: str) -> Any:
        prop = self._property(name)
        value = self._values.get(name)
        if value is None and prop.type_def.is_primitive:
            return prop.type_def.zero_value()
        return value

    def set(self, name: str, value: Any) -> None:
        prop = self._property(name)
        type_def = prop.type_def
        if value is None:
            if type_def.is_primitive:
                raise ConversionError(value, type_def.name, f"primitive property '{name}' cannot be None")
        elif not type_def.is_instance(value):
            raise ConversionError(value, type_def.name, f"wrong type for property '{name}'")
        self._values[name] = value

    def _indexed(self, name: str) -> DynamicProperty:
        prop = self._property(name)
        if not prop.is_indexed:
            raise InvalidArgumentError(f"Non-indexed property for '{name}'")
        return prop

    def _mapped(self, name: str) -> DynamicProperty:
        prop = self._property(name)
        if not prop.is_mapped:
            raise InvalidArgumentError(f"Non-mapped property for '{name}'")
        return prop

    def _check_element(self, prop: DynamicProperty, value: Any) -> None:
        content_type = prop.content_type
        if value is not None and content_type is not None and not content_type.is_instance(value):
            raise ConversionError(value, content_type.name, f"wrong element type for property '{prop.name}'")

    def get_indexed(self, name: str, index: int) -> Any:
        prop = self._indexed(name)
        return indexing.get_element(name, self._values.get(name), index, prop.type_def)

    def set_indexed(self, name: str, index: int, value: Any) -> None:
        prop = self._indexed(name)
        self._check_element(prop, value)
        current = self._values.get(name)
        if current is None and prop.type_def.is_array:
            allocated = indexing.allocate_array(prop.type_def, index + 1)
            indexing.set_element(name, allocated, index, value, prop.type_def)
            self._values[name] = allocated
            return
        indexing.set_element(name, current, index, value, prop.type_def)

    def get_mapped(self, name: str, key: str) -> Any:
        self._mapped(name)
        return indexing.get_mapped(name, self._values.get(name), key)

    def set_mapped(self, name: str, key: str, value: Any) -> None:
        prop = self._mapped(name)
        self._check_element(prop, value)
        current = self._values.get(name)
        if current is None:
            current = {}
            self._values[name] = current
        indexing.set_mapped(name, current, key, value)

    def contains(self, name: str, key: str) -> bool:
        self._mapped(name)
        return indexing.contains_mapped(name, self._values.get(name), key)

    def remove(self, name: str, key: str) -> None:
        self._mapped(name)
        indexing.remove_mapped(name, self._values.get(name), key)

    def __repr__(self) -> str:
        return f"<{self._class.name} {self._values!r}>"


class WrappedDynamicClass(BasicDynamicClass):
    """DynamicClass describing an ordinary Python class.

    new_instance wraps a fresh instance with 'wrap', so a class obtained from a
    ConvertingWrappedBean creates converting beans too.
    """

    def __init__(
        self,
        instance_type: type,
        properties: Iterable[DynamicProperty],
        wrap: Callable[[Any], WrappedBean] | None = None,
    ) -> None:
        super().__init__(qualified_name(instance_type), properties)
        self.instance_type = instance_type
        self._wrap = wrap if wrap is not None else WrappedBean

    def new_instance(self) -> WrappedBean:  # type: ignore[override]
        return self._wrap(self.instance_type())


def _reflective_adapter() -> ReflectiveAdapter:
    # Imported here: adapters imports this module for DynamicBean dispatch
    from typed_props.adapters import default_reflective_adapter

    return default_reflective_adapter()


class WrappedBean(DynamicBean):
    """Presents an ordinary Python object through the DynamicBean interface.

    Every operation is forwarded to the reflective adapter over the wrapped
    instance, so the two views always agree.
    """

    def __init__(self, instance: Any, adapter: ReflectiveAdapter | None = None) -> None:
        if instance is None:
            raise InvalidArgumentError("No instance to wrap")
        self._instance = instance
        self._adapter = adapter if adapter is not None else _reflective_adapter()
        self._class: WrappedDynamicClass | None = None

    @property
    def instance(self) -> Any:
        """The wrapped object."""
        return self._instance

    @property
    def adapter(self) -> ReflectiveAdapter:
        return self._adapter

    @property
    def dynamic_class(self) -> WrappedDynamicClass:
        if self._class is None:
            properties = [
                DynamicProperty(d.name, d.type_def) for d in self._adapter.describe(self._instance)
            ]
            self._class = WrappedDynamicClass(type(self._instance), properties, self._rewrap)
        return self._class

    def _rewrap(self, instance: Any) -> WrappedBean:
        return WrappedBean(instance, self._adapter)

    def get(self, name: str) -> Any:
        return self._adapter.read_simple(self._instance, name)

    def set(self, name: str, value: Any) -> None:
        self._adapter.write_simple(self._instance, name, value)

    def get_indexed(self, name: str, index: int) -> Any:
        return self._adapter.read_indexed(self._instance, name, index)

    def set_indexed(self, name: str, index: int, value: Any) -> None:
        self._adapter.write_indexed(self._instance, name, index, value)

    def get_mapped(self, name: str, key: str) -> Any:
        return self._adapter.read_mapped(self._instance, name, key)

    def set_mapped(self, name: str, key: str, value: Any) -> None:
        self._adapter.write_mapped(self._instance, name, key, value)

    def contains(self, name: str, key: str) -> bool:
        return self._adapter.contains_mapped(self._instance, name, key)

    def remove(self, name: str, key: str) -> None:
        self._adapter.remove_mapped(self._instance, name, key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._instance!r})"


class ConvertingWrappedBean(WrappedBean):
    """WrappedBean whose setters convert values to the declared property type.

    Conversion goes through 'registry', or the registry current at call time
    when none is given. Unconvertible values fall back to the type's zero
    value unless 'lenient' is false.
    """

    def __init__(
        self,
        instance: Any,
        adapter: ReflectiveAdapter | None = None,
        registry: ConverterRegistry | None = None,
        *,
        lenient: bool = True,
    ) -> None:
        super().__init__(instance, adapter)
        self._registry = registry
        self.lenient = lenient

    @property
    def registry(self) -> ConverterRegistry:
        return self._registry if self._registry is not None else current_registry()

    def _rewrap(self, instance: Any) -> WrappedBean:
        return ConvertingWrappedBean(instance, self._adapter, self._registry, lenient=self.lenient)

    def _coerce(self, type_def: TypeDefinition | None, value: Any) -> Any:
        if value is None or type_def is None or type_def.is_instance(value):
            return value
        return self.registry.convert(value, type_def, lenient=self.lenient)

    def _declared(self, name: str) -> TypeDefinition:
        return self._adapter.require_descriptor(self._instance, name).type_def

    def set(self, name: str, value: Any) -> None:
        super().set(name, self._coerce(self._declared(name), value))

    def set_indexed(self, name: str, index: int, value: Any) -> None:
        type_def = self._declared(name)
        content_type = element_type_of(type_def) if type_def.is_indexed else None
        super().set_indexed(name, index, self._coerce(content_type, value))

    def set_mapped(self, name: str, key: str, value: Any) -> None:
        type_def = self._declared(name)
        content_type = element_type_of(type_def) if type_def.is_map else None
        super().set_mapped(name, key, self._coerce(content_type, value))


class DynamicBeanMapping(collections.abc.MutableMapping):
    """Dict view of a DynamicBean, keyed by property name.

    The view is read-only unless created with read_only=False. Keys cannot
    be deleted; removing a property is not something a bean supports.
    """

    def __init__(self, bean: DynamicBean, read_only: bool = True) -> None:
        if bean is None:
            raise InvalidArgumentError("No bean to view")
        self.bean = bean
        self.read_only = read_only

    def _names(self) -> list[str]:
        if isinstance(self.bean, WrappedBean):
            # Write-only properties have no value to show
            return [d.name for d in self.bean.adapter.describe(self.bean.instance) if d.readable]
        return [p.name for p in self.bean.dynamic_class.properties()]

    def __getitem__(self, key: str) -> Any:
        if key not in self._names():
            raise KeyError(key)
        return self.bean.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        if self.read_only:
            raise TypeError(f"Cannot set '{key}' through a read-only view")
        self.bean.set(key, value)

    def __delitem__(self, key: str) -> None:
        raise TypeError(f"Cannot remove '{key}' from a bean")

    def __iter__(self) -> Iterator[str]:
        return iter(self._names())

    def __len__(self) -> int:
        return len(self._names())

    def __repr__(self) -> str:
        return f"DynamicBeanMapping({self.bean!r}, read_only={self.read_only})"


class LazyDynamicClass(BasicDynamicClass):
    """A BasicDynamicClass whose properties can be added and removed.

    A restricted class refuses both.
    """

    def __init__(
        self,
        name: str = "LazyDynamicClass",
        properties: Iterable[DynamicProperty | tuple[str, Any]] = (),
        types: TypeRegistry | None = None,
        bean_class: type[BasicDynamicBean] | None = None,
        *,
        restricted: bool = False,
    ) -> None:
        super().__init__(name, properties, types, bean_class if bean_class is not None else LazyDynamicBean)
        self.restricted = restricted

    def add(self, name: str, type_spec: Any = "object") -> DynamicProperty:
        """Declare property 'name' unless it already exists, and return it."""
        existing = self.get_property(name)
        if existing is not None:
            return existing
        if self.restricted:
            raise InvalidArgumentError(f"Dynamic class '{self.name}' is restricted, cannot add '{name}'")
        prop = DynamicProperty(name, self.types.resolve(type_spec))
        self._properties[name] = prop
        return prop

    def remove(self, name: str) -> None:
        if name is None:
            raise InvalidArgumentError("No property name specified")
        if self.restricted:
            raise InvalidArgumentError(f"Dynamic class '{self.name}' is restricted, cannot remove '{name}'")
        self._properties.pop(name, None)

    def __repr__(self) -> str:
        return f"LazyDynamicClass({self._name!r}, {list(self._properties)}, restricted={self.restricted})"


class LazyDynamicBean(BasicDynamicBean):
    """Dynamic bean that declares properties as they are first stored.

    Reading an undeclared property returns None. Storing a value declares
    it with the type of the value; indexed and mapped writes declare
    ``list[object]`` and ``map[object]`` properties. Indexed access grows a
    list with zero values of its element type up to the index. Unset
    indexed and mapped properties read as empty containers.
    """

    def __init__(self, dynamic_class: LazyDynamicClass | None = None) -> None:
        super().__init__(dynamic_class if dynamic_class is not None else LazyDynamicClass())

    @property
    def extensible(self) -> bool:
        """Whether undeclared properties are added on write."""
        return not self._class.restricted

    def _declare(self, name: str, type_spec: Any) -> DynamicProperty:
        prop = self._class.get_property(name)
        if prop is not None:
            return prop
        if not self.extensible:
            raise PropertyNotFoundError(name, self)
        return self._class.add(name, type_spec)

    def get(self, name: str) -> Any:
        prop = self._class.get_property(name)
        if prop is None:
            return None
        if self._values.get(name) is None and (prop.is_indexed or prop.is_mapped):
            self._values[name] = prop.type_def.zero_value()
        return super().get(name)

    def set(self, name: str, value: Any) -> None:
        self._declare(name, "object" if value is None else self._class.types.for_value(value))
        super().set(name, value)

    def _grow(self, prop: DynamicProperty, sequence: Any, index: int) -> None:
        if isinstance(sequence, tuple) or index < len(sequence):
            return
        content_type = prop.content_type
        fill = content_type.zero_value() if content_type is not None else None
        sequence.extend([fill] * (index + 1 - len(sequence)))

    def get_indexed(self, name: str, index: int) -> Any:
        self._declare(name, "list[object]")
        prop = self._indexed(name)
        self._grow(prop, self.get(name), index)
        return super().get_indexed(name, index)

    def set_indexed(self, name: str, index: int, value: Any) -> None:
        self._declare(name, "list[object]")
        prop = self._indexed(name)
        self._check_element(prop, value)
        sequence = self.get(name)
        self._grow(prop, sequence, index)
        indexing.set_element(name, sequence, index, value, prop.type_def)

    def get_mapped(self, name: str, key: str) -> Any:
        self._declare(name, "map[object]")
        return super().get_mapped(name, key)

    def set_mapped(self, name: str, key: str, value: Any) -> None:
        self._declare(name, "map[object]")
        super().set_mapped(name, key, value)

    def contains(self, name: str, key: str) -> bool:
        if self._class.get_property(name) is None:
            return False
        return super().contains(name, key)

    def remove(self, name: str, key: str) -> None:
        if self._class.get_property(name) is None:
            return
        super().remove(name, key)
