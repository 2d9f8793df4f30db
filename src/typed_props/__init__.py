"""Typed Props - Property path access and type conversion for Python objects."""

from typed_props.adapters import (
    ContainerAdapter,
    DynamicAdapter,
    PropertyDescriptor,
    ReflectiveAdapter,
    WrappedAdapter,
    adapter_for,
)
from typed_props.conversion import (
    ConverterRegistry,
    convert,
    convert_to_string,
    current_registry,
    default_registry,
    registry_scope,
)
from typed_props.converters import Converter, DateTimeConverter
from typed_props.dynamic import (
    BasicDynamicBean,
    BasicDynamicClass,
    ConvertingWrappedBean,
    DynamicBean,
    DynamicBeanMapping,
    DynamicClass,
    DynamicProperty,
    LazyDynamicBean,
    LazyDynamicClass,
    WrappedBean,
)
from typed_props.errors import (
    ArrayIndexOutOfBoundsError,
    CollectionIndexOutOfBoundsError,
    ConversionError,
    CopyError,
    IndexOutOfBoundsError,
    InvalidArgumentError,
    NestedNullError,
    PathParseError,
    PropertyAccessError,
    PropertyNotFoundError,
    PropertyNotReadableError,
    PropertyNotWritableError,
)
from typed_props.parsing import parse_path
from typed_props.path import PropertyPath, Segment, SegmentKind, format_path
from typed_props.resolver import (
    PropertyResolver,
    copy_properties,
    describe,
    get_property,
    get_string_property,
    populate,
    set_property,
)
from typed_props.types import (
    AliasTypeDefinition,
    ArrayTypeDefinition,
    ListTypeDefinition,
    MapTypeDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    TypeDefinition,
    TypeRegistry,
)

__all__ = [
    # Main API
    "PropertyResolver",
    "get_property",
    "get_string_property",
    "set_property",
    "copy_properties",
    "describe",
    "populate",
    # Paths
    "PropertyPath",
    "Segment",
    "SegmentKind",
    "parse_path",
    "format_path",
    # Conversion
    "Converter",
    "ConverterRegistry",
    "DateTimeConverter",
    "convert",
    "convert_to_string",
    "current_registry",
    "default_registry",
    "registry_scope",
    # Containers
    "ContainerAdapter",
    "ReflectiveAdapter",
    "DynamicAdapter",
    "WrappedAdapter",
    "PropertyDescriptor",
    "adapter_for",
    "DynamicProperty",
    "DynamicClass",
    "BasicDynamicClass",
    "DynamicBean",
    "BasicDynamicBean",
    "WrappedBean",
    "ConvertingWrappedBean",
    "LazyDynamicClass",
    "LazyDynamicBean",
    "DynamicBeanMapping",
    # Type definitions
    "TypeDefinition",
    "PrimitiveType",
    "PrimitiveTypeDefinition",
    "AliasTypeDefinition",
    "ArrayTypeDefinition",
    "ListTypeDefinition",
    "MapTypeDefinition",
    "TypeRegistry",
    # Errors
    "PropertyAccessError",
    "InvalidArgumentError",
    "PathParseError",
    "PropertyNotFoundError",
    "PropertyNotReadableError",
    "PropertyNotWritableError",
    "NestedNullError",
    "IndexOutOfBoundsError",
    "ArrayIndexOutOfBoundsError",
    "CollectionIndexOutOfBoundsError",
    "ConversionError",
    "CopyError",
]

__version__ = "0.1.0"
