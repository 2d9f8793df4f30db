"""Converters between textual and typed representations.

Every converter takes the resolved target TypeDefinition and a raw value and
returns the typed value, or raises ConversionError. Converters never fall
back to defaults themselves; lenient behavior lives in ConverterRegistry.
"""

from __future__ import annotations

import array
import collections.abc
import datetime
import decimal
import math
import re
import struct
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, Callable, Sequence

from typed_props.errors import ConversionError
from typed_props.parsing.list_lexer import split_list_literal
from typed_props.types import (
    ArrayTypeDefinition,
    EnumTypeDefinition,
    ListTypeDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    ScalarTypeDefinition,
    TypeDefinition,
    element_type_of,
    type_range,
)

_INTEGER_TEXT = re.compile(r"[+-]?\d+")

# Largest finite float32 value
FLOAT32_MAX = struct.unpack("<f", b"\xff\xff\x7f\x7f")[0]


def wrap_integer(value: int, primitive: PrimitiveType) -> int:
    """Truncate an integer to the width of 'primitive' (two's complement)."""
    min_val, max_val = type_range(primitive)
    if min_val <= value <= max_val:
        return value
    range_size = max_val - min_val + 1
    return ((value - min_val) % range_size) + min_val


def to_float32(value: float) -> float:
    """Round a float to the nearest float32 value."""
    if math.isnan(value) or math.isinf(value):
        return value
    if abs(value) > FLOAT32_MAX:
        return math.copysign(math.inf, value)
    return struct.unpack("<f", struct.pack("<f", value))[0]


class Converter:
    """Base class for all converters."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        """Convert value to the target type, raising ConversionError on failure."""
        raise NotImplementedError

    def __call__(self, target: TypeDefinition, value: Any) -> Any:
        return self.convert(target, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FunctionConverter(Converter):
    """Adapts a plain ``fn(target, value)`` callable to the Converter interface."""

    def __init__(self, fn: Callable[[TypeDefinition, Any], Any]) -> None:
        self.fn = fn

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        try:
            return self.fn(target, value)
        except (TypeError, ValueError, ArithmeticError) as exc:
            if isinstance(exc, ConversionError):
                raise
            raise ConversionError(value, target.name, str(exc)) from exc

    def __repr__(self) -> str:
        return f"FunctionConverter({getattr(self.fn, '__name__', self.fn)!r})"


class BooleanConverter(Converter):
    """Converts 'true/yes/y/on/1' and 'false/no/n/off/0' (case-insensitive)."""

    TRUE_STRINGS = ("true", "yes", "y", "on", "1")
    FALSE_STRINGS = ("false", "no", "n", "off", "0")

    def __init__(
        self,
        true_strings: Sequence[str] = TRUE_STRINGS,
        false_strings: Sequence[str] = FALSE_STRINGS,
    ) -> None:
        self.true_strings = frozenset(s.lower() for s in true_strings)
        self.false_strings = frozenset(s.lower() for s in false_strings)

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in self.true_strings:
            return True
        if text in self.false_strings:
            return False
        raise ConversionError(value, target.name, "not a recognized boolean")


class IntegerConverter(Converter):
    """Converts to integer primitives (wrapping numbers to width) and bigint."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        base = target.resolve_base_type()
        primitive = base.primitive if isinstance(base, PrimitiveTypeDefinition) else None

        if isinstance(value, bool):
            number = int(value)
        elif isinstance(value, int):
            number = value
        elif isinstance(value, (float, decimal.Decimal)):
            if not math.isfinite(value):
                raise ConversionError(value, target.name, "not a finite number")
            number = int(value)
        else:
            text = str(value).strip()
            if not _INTEGER_TEXT.fullmatch(text):
                raise ConversionError(value, target.name, "not an integer")
            number = int(text)
            if primitive is not None:
                # Text must fit; only numbers are narrowed silently
                min_val, max_val = type_range(primitive)
                if not min_val <= number <= max_val:
                    raise ConversionError(
                        value, target.name, f"out of range ({min_val}..{max_val})"
                    )
            return number

        if primitive is None:
            return number
        return wrap_integer(number, primitive)


class FloatConverter(Converter):
    """Converts to float32 and float64."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        base = target.resolve_base_type()
        if isinstance(value, (int, float, decimal.Decimal)):
            try:
                number = float(value)
            except OverflowError as exc:
                raise ConversionError(value, target.name, "too large") from exc
        else:
            text = str(value).strip()
            try:
                number = float(text)
            except ValueError as exc:
                raise ConversionError(value, target.name, "not a number") from exc

        if isinstance(base, PrimitiveTypeDefinition) and base.primitive == PrimitiveType.FLOAT32:
            return to_float32(number)
        return number


class DecimalConverter(Converter):
    """Converts to decimal.Decimal."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        if isinstance(value, decimal.Decimal):
            return value
        if isinstance(value, bool):
            raise ConversionError(value, target.name, "booleans are not numbers")
        if isinstance(value, float):
            # Use the shortest repr so 0.1 stays 0.1
            value = repr(value)
        try:
            result = decimal.Decimal(str(value).strip())
        except decimal.InvalidOperation as exc:
            raise ConversionError(value, target.name, "not a decimal number") from exc
        if not result.is_finite():
            raise ConversionError(value, target.name, "not a finite number")
        return result


class CharacterConverter(Converter):
    """Converts to a single character (the first character of the text)."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        text = value if isinstance(value, str) else str(value)
        if not text:
            raise ConversionError(value, target.name, "empty string")
        return text[0]


class StringConverter(Converter):
    """Converts any value to its locale-invariant text form."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        return format_scalar(value)


def format_scalar(value: Any) -> str | None:
    """Format a scalar value as text."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, PurePath):
        return value.as_posix()
    return str(value)


class DateTimeConverter(Converter):
    """Converts to date, time and datetime values.

    Text is parsed with the configured strptime patterns when given, and as
    ISO 8601 otherwise. Numbers are POSIX timestamps in UTC.
    """

    def __init__(self, patterns: Sequence[str] | None = None) -> None:
        self.patterns = list(patterns) if patterns else []

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        base = target.resolve_base_type()
        kind = base.python_type if isinstance(base, ScalarTypeDefinition) else datetime.datetime

        if isinstance(value, datetime.datetime):
            moment: datetime.datetime | datetime.date | datetime.time = value
        elif isinstance(value, (datetime.date, datetime.time)):
            moment = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                moment = datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
            except (OverflowError, OSError, ValueError) as exc:
                raise ConversionError(value, target.name, "timestamp out of range") from exc
        else:
            moment = self._parse(str(value).strip(), kind, target)

        return self._narrow(moment, kind, value, target)

    def _parse(self, text: str, kind: type, target: TypeDefinition) -> Any:
        for pattern in self.patterns:
            try:
                return datetime.datetime.strptime(text, pattern)
            except ValueError:
                continue
        if self.patterns:
            raise ConversionError(text, target.name, f"does not match {self.patterns}")
        try:
            return kind.fromisoformat(text)  # type: ignore[attr-defined]
        except ValueError:
            pass
        try:
            return datetime.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ConversionError(text, target.name, "not an ISO 8601 value") from exc

    @staticmethod
    def _narrow(moment: Any, kind: type, value: Any, target: TypeDefinition) -> Any:
        if kind is datetime.datetime:
            if isinstance(moment, datetime.datetime):
                return moment
            if isinstance(moment, datetime.date):
                return datetime.datetime.combine(moment, datetime.time())
        elif kind is datetime.date:
            if isinstance(moment, datetime.datetime):
                return moment.date()
            if isinstance(moment, datetime.date):
                return moment
        elif kind is datetime.time:
            if isinstance(moment, datetime.datetime):
                return moment.timetz()
            if isinstance(moment, datetime.time):
                return moment
        raise ConversionError(value, target.name, f"cannot represent as {kind.__name__}")


class PathConverter(Converter):
    """Converts text to pathlib.Path."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        if isinstance(value, PurePath):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ConversionError(value, target.name, "not a path")
        return Path(value)


class EnumConverter(Converter):
    """Converts member names (or values) to members of an Enum class."""

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        base = target.resolve_base_type()
        if not isinstance(base, EnumTypeDefinition):
            raise ConversionError(value, target.name, "not an enum type")
        enum_type = base.enum_type
        if isinstance(value, enum_type):
            return value
        if isinstance(value, str):
            name = value.strip()
            if name in enum_type.__members__:
                return enum_type.__members__[name]
            for member_name, member in enum_type.__members__.items():
                if member_name.lower() == name.lower():
                    return member
        try:
            return enum_type(value)
        except ValueError as exc:
            raise ConversionError(value, target.name, "no such member") from exc


class ArrayConverter(Converter):
    """Converts list literals, sequences or single values to a list of elements.

    Strings are split with the list literal grammar (``{a, b}``, ``a b``,
    quoted elements). A failing element fails the whole conversion.
    """

    def __init__(self, element_converter: Converter) -> None:
        self.element_converter = element_converter

    def convert(self, target: TypeDefinition, value: Any) -> Any:
        element_type = element_type_of(target)
        if element_type is None:
            raise ConversionError(value, target.name, "not an array type")
        return [
            None if item is None else self.element_converter.convert(element_type, item)
            for item in split_elements(value, target)
        ]

    def __repr__(self) -> str:
        return f"ArrayConverter({self.element_converter!r})"


def split_elements(value: Any, target: TypeDefinition) -> list[Any]:
    """Return the raw elements of a value headed for an array or list type."""
    if isinstance(value, str):
        try:
            return split_list_literal(value)
        except ValueError as exc:
            raise ConversionError(value, target.name, str(exc)) from exc
    if isinstance(value, (list, tuple, array.array)):
        return list(value)
    if isinstance(value, collections.abc.Iterable) and not isinstance(
        value, (collections.abc.Mapping, bytes)
    ):
        return list(value)
    return [value]


def is_sequence_type(type_def: TypeDefinition) -> bool:
    """Return whether a type converts through split_elements."""
    return isinstance(type_def.resolve_base_type(), (ArrayTypeDefinition, ListTypeDefinition))
