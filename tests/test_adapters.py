"""Tests for the container adapters."""

import types as pytypes
from typing import ClassVar

import pytest

from conftest import Point, SampleBean, Slotted, make_linked
from typed_props.adapters import (
    DynamicAdapter,
    ReflectiveAdapter,
    WrappedAdapter,
    adapter_for,
    default_reflective_adapter,
)
from typed_props.dynamic import WrappedBean
from typed_props.errors import (
    ArrayIndexOutOfBoundsError,
    ConversionError,
    InvalidArgumentError,
    PropertyNotFoundError,
    PropertyNotReadableError,
    PropertyNotWritableError,
)


class Base:
    first: int = 1
    shared: str = "base"


class Derived(Base):
    second: float = 2.0
    _private: int = 0
    counter: ClassVar[int] = 0

    @property
    def shared(self) -> str:
        return "derived"


class Plain:
    def __init__(self):
        self.size = 3
        self.label = "box"
        self._secret = "hidden"


class Broken:
    @property
    def boom(self) -> int:
        raise AttributeError("inner failure")


@pytest.fixture
def adapter():
    return ReflectiveAdapter()


class TestReflectiveDescribe:
    """Tests for reflective property discovery."""

    def test_dataclass_fields_and_properties(self, adapter, bean):
        """Test that fields and properties are found in definition order."""
        names = [d.name for d in adapter.describe(bean)]

        assert names[:3] == ["boolean_property", "byte_property", "char_property"]
        assert "read_only" in names
        assert "write_only" in names
        assert "_write_only" not in names

    def test_declared_types(self, adapter, bean):
        """Test types declared by hints."""
        assert adapter.find_descriptor(bean, "byte_property").type_def.name == "int8"
        assert adapter.find_descriptor(bean, "long_property").type_def.name == "int64"
        assert adapter.find_descriptor(bean, "int_array").type_def.name == "int32[]"
        assert adapter.find_descriptor(bean, "string_list").type_def.name == "list[string]"
        assert adapter.find_descriptor(bean, "fixed").type_def.name == "int64[]"
        assert adapter.find_descriptor(bean, "mapped_int").type_def.name == "map[int64]"
        assert adapter.find_descriptor(bean, "color").type_def.is_enum
        assert adapter.find_descriptor(bean, "nested").type_def.name.endswith("SampleBean")

    def test_unresolvable_annotation_is_isolated(self, adapter):
        """Test that one unresolvable annotation leaves the others typed."""
        linked_type = make_linked()
        descriptors = {d.name: d.type_def for d in adapter.describe(linked_type())}

        assert descriptors["count"].name == "int64"
        assert descriptors["tags"].name == "list[string]"
        assert descriptors["other"].name.endswith("Linked")
        assert descriptors["missing"].name == "object"

    def test_property_access_rights(self, adapter, bean):
        """Test readability and writability of properties."""
        read_only = adapter.find_descriptor(bean, "read_only")
        write_only = adapter.find_descriptor(bean, "write_only")

        assert read_only.readable and not read_only.writable
        assert read_only.type_def.name == "string"
        assert write_only.writable and not write_only.readable
        assert write_only.type_def.name == "string"

    def test_inheritance(self, adapter):
        """Test base-first order and most-derived definitions."""
        descriptors = adapter.describe(Derived())
        names = [d.name for d in descriptors]

        assert names == ["first", "shared", "second"]
        shared = adapter.find_descriptor(Derived(), "shared")
        assert not shared.writable
        assert adapter.read_simple(Derived(), "shared") == "derived"

    def test_class_var_and_private_excluded(self, adapter):
        """Test that ClassVar and underscore names are not properties."""
        assert adapter.find_descriptor(Derived(), "counter") is None
        assert adapter.find_descriptor(Derived(), "_private") is None

    def test_instance_attributes(self, adapter):
        """Test that public instance attributes are properties."""
        plain = Plain()
        descriptors = {d.name: d for d in adapter.describe(plain)}

        assert set(descriptors) == {"size", "label"}
        assert descriptors["size"].type_def.name == "int64"
        assert descriptors["label"].writable

    def test_namespace(self, adapter):
        """Test a SimpleNamespace container."""
        namespace = pytypes.SimpleNamespace(a=1, b="x")
        assert [d.name for d in adapter.describe(namespace)] == ["a", "b"]

    def test_slots(self, adapter):
        """Test that slots are properties and unset slots read as None."""
        slotted = Slotted()

        assert [d.name for d in adapter.describe(slotted)] == ["x", "y"]
        assert adapter.read_simple(slotted, "x") is None
        adapter.write_simple(slotted, "x", 5)
        assert adapter.read_simple(slotted, "x") == 5

    def test_frozen_dataclass(self, adapter):
        """Test that frozen dataclass fields are read-only."""
        point = Point(1, 2)

        assert not adapter.find_descriptor(point, "x").writable
        assert adapter.read_simple(point, "x") == 1
        with pytest.raises(PropertyNotWritableError):
            adapter.write_simple(point, "x", 3)

    def test_cache(self, adapter, bean):
        """Test that class introspection is cached and can be cleared."""
        first = adapter.describe(bean)
        assert adapter.describe(SampleBean()) == first

        adapter.clear_cache()
        assert adapter.describe(bean) == first


class TestReflectiveAccess:
    """Tests for reflective reads and writes."""

    def test_read_write(self, adapter, bean):
        """Test simple reads and writes."""
        adapter.write_simple(bean, "int_property", 5)
        assert adapter.read_simple(bean, "int_property") == 5

    def test_unknown(self, adapter, bean):
        """Test that unknown names raise PropertyNotFoundError."""
        with pytest.raises(PropertyNotFoundError) as exc_info:
            adapter.read_simple(bean, "unknown")
        assert exc_info.value.name == "unknown"
        assert exc_info.value.container_type == "SampleBean"
        with pytest.raises(PropertyNotFoundError):
            adapter.write_simple(bean, "unknown", 1)

    def test_write_only(self, adapter, bean):
        """Test that write-only properties cannot be read."""
        adapter.write_simple(bean, "write_only", "secret")
        with pytest.raises(PropertyNotReadableError):
            adapter.read_simple(bean, "write_only")

    def test_read_only(self, adapter, bean):
        """Test that read-only properties cannot be written."""
        with pytest.raises(PropertyNotWritableError):
            adapter.write_simple(bean, "read_only", "x")

    def test_getter_errors_propagate(self, adapter):
        """Test that errors raised by a getter are not hidden."""
        with pytest.raises(AttributeError, match="inner failure"):
            adapter.read_simple(Broken(), "boom")

    def test_indexed(self, adapter, bean):
        """Test indexed access to sequence properties."""
        assert adapter.read_indexed(bean, "int_array", 1) == 10
        adapter.write_indexed(bean, "int_array", 1, 11)
        assert bean.int_array[1] == 11

        with pytest.raises(ArrayIndexOutOfBoundsError) as exc_info:
            adapter.read_indexed(bean, "int_array", 5)
        assert exc_info.value.index == 5
        assert exc_info.value.length == 5

    def test_indexed_tuple_not_writable(self, adapter, bean):
        """Test that tuples cannot be written element-wise."""
        assert adapter.read_indexed(bean, "fixed", 0) == 1
        with pytest.raises(PropertyNotWritableError):
            adapter.write_indexed(bean, "fixed", 0, 9)

    def test_indexed_on_scalar(self, adapter, bean):
        """Test indexed access on a non-sequence property."""
        with pytest.raises(InvalidArgumentError):
            adapter.read_indexed(bean, "int_property", 0)
        with pytest.raises(InvalidArgumentError):
            adapter.read_indexed(bean, "string_property", 0)

    def test_indexed_write_allocates_array(self, adapter, bean):
        """Test that an indexed write into an unset array allocates it."""
        adapter.write_indexed(bean, "null_array", 2, 5)
        assert bean.null_array == [0, 0, 5]

    def test_array_module_values(self, adapter):
        """Test that array.array elements reject values that do not fit."""
        import array

        holder = pytypes.SimpleNamespace(data=array.array("b", [1, 2]))
        adapter.write_indexed(holder, "data", 0, 100)
        assert holder.data[0] == 100
        with pytest.raises(ConversionError):
            adapter.write_indexed(holder, "data", 0, 1000)

    def test_mapped(self, adapter, bean):
        """Test mapped access to mapping properties."""
        assert adapter.read_mapped(bean, "mapped_property", "First Key") == "First Value"
        assert adapter.read_mapped(bean, "mapped_property", "Unknown") is None

        adapter.write_mapped(bean, "mapped_property", "New", "value")
        assert bean.mapped_property["New"] == "value"
        adapter.remove_mapped(bean, "mapped_property", "Unknown")

    def test_mapped_on_scalar(self, adapter, bean):
        """Test mapped access on a non-mapping property."""
        with pytest.raises(InvalidArgumentError):
            adapter.read_mapped(bean, "int_array", "key")


class TestMappingContainers:
    """Tests for mappings used as containers."""

    def test_keys_are_properties(self, adapter):
        """Test that string keys are described."""
        container = {"a": 1, "b": "x", 3: "ignored"}
        descriptors = {d.name: d for d in adapter.describe(container)}

        assert set(descriptors) == {"a", "b"}
        assert descriptors["a"].type_def.name == "int64"

    def test_missing_key_reads_none(self, adapter):
        """Test that missing keys read as None."""
        assert adapter.read_simple({"a": 1}, "b") is None

    def test_write_adds_keys(self, adapter):
        """Test that any key can be written to a mutable mapping."""
        container = {}
        assert adapter.find_descriptor(container, "new").writable
        adapter.write_simple(container, "new", 1)
        assert container == {"new": 1}

    def test_read_only_mapping(self, adapter):
        """Test a mapping proxy container."""
        container = pytypes.MappingProxyType({"a": 1})

        assert adapter.find_descriptor(container, "b") is None
        assert not adapter.find_descriptor(container, "a").writable
        with pytest.raises(PropertyNotWritableError):
            adapter.write_simple(container, "a", 2)


class TestAdapterFor:
    """Tests for adapter dispatch."""

    def test_dispatch(self, bean, dynamic_bean):
        """Test that each container shape gets its adapter."""
        assert isinstance(adapter_for(WrappedBean(bean)), WrappedAdapter)
        assert isinstance(adapter_for(dynamic_bean), DynamicAdapter)
        assert adapter_for(bean) is default_reflective_adapter()
        assert adapter_for({}) is default_reflective_adapter()

    def test_dynamic_adapter(self, dynamic_bean):
        """Test describing a dynamic bean."""
        adapter = adapter_for(dynamic_bean)

        assert [d.name for d in adapter.describe(dynamic_bean)][:2] == ["name", "count"]
        assert adapter.find_descriptor(dynamic_bean, "count").type_def.name == "int32"
        assert adapter.find_descriptor(dynamic_bean, "missing") is None

    def test_wrapped_adapter(self, bean):
        """Test that the wrapped adapter describes the wrapped object."""
        wrapped = WrappedBean(bean)
        adapter = adapter_for(wrapped)

        assert adapter.describe(wrapped) == default_reflective_adapter().describe(bean)
        assert adapter.read_simple(wrapped, "int_property") == 123
