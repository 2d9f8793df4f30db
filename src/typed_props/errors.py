"""Exception types raised by the typed_props library."""

from __future__ import annotations

from typing import Any


class PropertyAccessError(Exception):
    """Base class for all typed_props errors."""


class InvalidArgumentError(PropertyAccessError, ValueError):
    """A precondition on an argument was violated (e.g. a None container)."""


class PathParseError(InvalidArgumentError):
    """A property path expression could not be parsed."""

    def __init__(self, message: str, expression: str | None = None, position: int | None = None) -> None:
        super().__init__(message)
        self.expression = expression
        self.position = position


class PropertyNotFoundError(PropertyAccessError, LookupError):
    """A named property does not exist on a container."""

    def __init__(self, name: str, container: Any = None, message: str | None = None) -> None:
        self.name = name
        self.container_type = type(container).__name__ if container is not None else None
        if message is None:
            message = f"Unknown property '{name}'"
            if self.container_type is not None:
                message += f" on '{self.container_type}'"
        super().__init__(message)


class PropertyNotReadableError(PropertyNotFoundError):
    """The property exists but has no getter."""

    def __init__(self, name: str, container: Any = None) -> None:
        super().__init__(name, container, f"Property '{name}' has no getter")


class PropertyNotWritableError(PropertyNotFoundError):
    """The property exists but has no setter (or its value is immutable)."""

    def __init__(self, name: str, container: Any = None, message: str | None = None) -> None:
        super().__init__(name, container, message or f"Property '{name}' has no setter")


class NestedNullError(PropertyAccessError, ValueError):
    """An intermediate segment of a path resolved to None."""

    def __init__(self, path: str, full_path: str | None = None) -> None:
        self.path = path
        self.full_path = full_path
        message = f"Null property value for '{path}'"
        if full_path is not None and full_path != path:
            message += f" on path '{full_path}'"
        super().__init__(message)


class IndexOutOfBoundsError(PropertyAccessError, IndexError):
    """An indexed read or write fell outside the current bounds."""

    kind = "sequence"

    def __init__(self, name: str, index: int, length: int) -> None:
        self.name = name
        self.index = index
        self.length = length
        super().__init__(
            f"Index {index} out of bounds for {self.kind} property '{name}' (length {length})"
        )


class ArrayIndexOutOfBoundsError(IndexOutOfBoundsError):
    """Index outside a fixed-size array. Arrays never grow."""

    kind = "array"


class CollectionIndexOutOfBoundsError(IndexOutOfBoundsError):
    """Index outside an ordered, growable collection."""

    kind = "collection"


class ConversionError(PropertyAccessError, ValueError):
    """A value could not be converted to the requested type."""

    def __init__(self, value: Any, target: str, reason: str | None = None) -> None:
        self.value = value
        self.target = target
        message = f"Cannot convert {value!r} to {target}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CopyError(PropertyAccessError):
    """One or more properties failed while copying between containers."""

    def __init__(self, failures: dict[str, Exception]) -> None:
        self.failures = failures
        details = ", ".join(f"{name}: {exc}" for name, exc in failures.items())
        super().__init__(f"Failed to copy {len(failures)} propert{'y' if len(failures) == 1 else 'ies'} ({details})")
