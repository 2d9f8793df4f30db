"""Parsed property paths.

A property path is a dot-separated sequence of segments. Each segment names a
property and may carry one subscript: ``[index]`` for positional access or
``(key)`` for keyed access, e.g. ``orders[0].lines(sku-1.2).quantity``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator


class SegmentKind(Enum):
    """How a segment addresses its property."""

    SIMPLE = "simple"
    INDEXED = "indexed"
    MAPPED = "mapped"


@dataclass(frozen=True)
class Segment:
    """One step of a property path."""

    name: str
    index: int | None = None
    key: str | None = None

    def __post_init__(self) -> None:
        if self.index is not None and self.key is not None:
            raise ValueError(f"Segment '{self.name}' cannot be both indexed and mapped")

    @property
    def kind(self) -> SegmentKind:
        if self.index is not None:
            return SegmentKind.INDEXED
        if self.key is not None:
            return SegmentKind.MAPPED
        return SegmentKind.SIMPLE

    @property
    def is_indexed(self) -> bool:
        return self.index is not None

    @property
    def is_mapped(self) -> bool:
        return self.key is not None

    def __str__(self) -> str:
        if self.index is not None:
            return f"{self.name}[{self.index}]"
        if self.key is not None:
            return f"{self.name}({self.key})"
        return self.name


@dataclass(frozen=True)
class PropertyPath:
    """An immutable, non-empty sequence of segments."""

    segments: tuple[Segment, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("A property path needs at least one segment")

    @property
    def last(self) -> Segment:
        """Return the final segment (the one read or written)."""
        return self.segments[-1]

    @property
    def parent(self) -> PropertyPath | None:
        """Return the path to the container of the last segment, or None."""
        if len(self.segments) == 1:
            return None
        return PropertyPath(self.segments[:-1])

    @property
    def is_nested(self) -> bool:
        return len(self.segments) > 1

    def prefix(self, count: int) -> PropertyPath:
        """Return the path made of the first 'count' segments."""
        return PropertyPath(self.segments[:count])

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __str__(self) -> str:
        return format_path(self.segments)


def format_path(segments: PropertyPath | Iterable[Segment]) -> str:
    """Render segments back to a path expression."""
    return ".".join(str(segment) for segment in segments)
