"""Shared fixtures: sample containers and fresh registries."""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

import pytest

from typed_props.conversion import ConverterRegistry
from typed_props.dynamic import BasicDynamicClass
from typed_props.types import TypeRegistry


class Color(Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"


@dataclass
class Address:
    street: Optional[str] = None
    city: Optional[str] = None


@dataclass
class SampleBean:
    """A container exercising every kind of declared property."""

    boolean_property: bool = True
    byte_property: Annotated[int, "int8"] = 121
    char_property: Annotated[str, "character"] = "a"
    double_property: float = 321.0
    float_property: Annotated[float, "float32"] = 123.0
    int_property: Annotated[int, "int32"] = 123
    long_property: int = 321
    short_property: Annotated[int, "int16"] = 987
    string_property: Optional[str] = "This is a string"
    big_property: Annotated[int, "bigint"] = 10**30
    decimal_property: Decimal = Decimal("1.5")
    date_property: Optional[datetime.date] = None
    color: Color = Color.RED
    int_array: Annotated[list[int], "int32[]"] = field(default_factory=lambda: [0, 10, 20, 30, 40])
    string_array: Annotated[list[str], "string[]"] = field(
        default_factory=lambda: ["String 0", "String 1", "String 2", "String 3", "String 4"]
    )
    string_list: list[str] = field(default_factory=lambda: ["String 0", "String 1", "String 2"])
    fixed: tuple[int, ...] = (1, 2, 3)
    null_array: Annotated[Optional[list[int]], "int32[]"] = None
    mapped_property: dict[str, str] = field(
        default_factory=lambda: {"First Key": "First Value", "Second Key": "Second Value"}
    )
    mapped_int: dict[str, int] = field(default_factory=lambda: {"One": 1, "Two": 2})
    nested: Optional["SampleBean"] = None
    address: Optional[Address] = None

    @property
    def read_only(self) -> str:
        return "Read Only String"

    def _set_write_only(self, value: str) -> None:
        self._write_only = value

    write_only = property(None, _set_write_only)


@dataclass
class SmallBean:
    """Destination holding only a few of SampleBean's properties."""

    int_property: int = 0
    string_property: Optional[str] = None

    @property
    def read_only(self) -> str:
        return "Small"


@dataclass(frozen=True)
class Point:
    x: int = 0
    y: int = 0


class Slotted:
    __slots__ = ("x", "y", "_hidden")


def make_linked():
    """Build a local class that typing.get_type_hints cannot resolve as a whole."""

    @dataclass
    class Linked:
        count: "int" = 0
        tags: "list[str]" = None
        other: "Optional[Linked]" = None
        missing: "NoSuchType" = None  # noqa: F821

    return Linked


@pytest.fixture
def bean():
    """A SampleBean with default values."""
    return SampleBean()


@pytest.fixture
def types():
    """A fresh type registry."""
    return TypeRegistry()


@pytest.fixture
def registry(types):
    """A fresh converter registry over a fresh type registry."""
    return ConverterRegistry(types)


@pytest.fixture
def dynamic_class():
    """A dynamic class with scalar, indexed and mapped properties."""
    return BasicDynamicClass(
        "Record",
        [
            ("name", "string"),
            ("count", "int32"),
            ("flag", "boolean"),
            ("ratio", "float64"),
            ("scores", "int32[]"),
            ("tags", "list[string]"),
            ("attrs", "map[string]"),
            ("child", "object"),
        ],
    )


@pytest.fixture
def dynamic_bean(dynamic_class):
    """A fresh bean of the dynamic class."""
    return dynamic_class.new_instance()
