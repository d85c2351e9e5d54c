"""
Immutable array regions and address <-> element coordinate translation.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import AbstractSet, Callable, Iterable

import numpy as np

from .length import region_starting_at, resolve_length
from .protocols import AddressSpaceView, ByteSource, TextCodec, as_byte_array
from .segments import (
    ContentKind,
    ElementSchema,
    LengthSpec,
    ParseResult,
    Segment,
    parse_schema,
)

EXTEND_ARRAY = "+"

# (data, segment_start, segment, codec) -> text
SegmentRenderer = Callable[[np.ndarray, int, Segment, TextCodec], str]


@dataclass(frozen=True)
class ArrayOffset:
    """Where an absolute address falls inside an array."""
    element_index: int
    segment_index: int
    segment_start: int
    segment_offset: int


@dataclass(frozen=True)
class ArrayRegion:
    """
    A schema-typed, repeating structure at a fixed address.

    Instances never change. extend(), relocate() and
    with_back_references() return new regions sharing the parsed schema.
    """
    start: int
    schema_text: str
    element: ElementSchema
    length_spec: LengthSpec
    element_count: int
    back_references: frozenset[int] = frozenset()

    def __post_init__(self):
        if self.element_count < 0:
            raise ValueError(f"element_count must be non-negative, got {self.element_count}")
        if not self.element.segments:
            raise ValueError("Array regions need at least one segment")
        if not isinstance(self.back_references, frozenset):
            object.__setattr__(self, "back_references", frozenset(self.back_references))

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self.element.segments

    @property
    def element_length(self) -> int:
        return self.element.element_length

    @property
    def total_length(self) -> int:
        return self.element_length * self.element_count

    @property
    def length(self) -> int:
        return self.total_length

    @property
    def end(self) -> int:
        return self.start + self.total_length

    def __repr__(self) -> str:
        return (
            f"ArrayRegion(0x{self.start:06X}, {self.schema_text!r}, "
            f"count={self.element_count}, length={self.total_length})"
        )

    # ---------------------------------------------------------------- coords

    def element_address(self, element_index: int) -> int:
        return self.start + element_index * self.element_length

    def to_offset(self, address: int) -> ArrayOffset:
        """
        Translate an absolute address into element/segment coordinates.

        Raises:
            ValueError: If ``address`` lies outside [start, start + total_length).
        """
        if not self.start <= address < self.end:
            raise ValueError(
                f"Address 0x{address:X} is outside array 0x{self.start:X}-0x{self.end:X}"
            )

        relative = address - self.start
        element_index, segment_offset = divmod(relative, self.element_length)
        segment_index = 0
        while segment_offset >= self.segments[segment_index].length:
            segment_offset -= self.segments[segment_index].length
            segment_index += 1

        return ArrayOffset(
            element_index=element_index,
            segment_index=segment_index,
            segment_start=address - segment_offset,
            segment_offset=segment_offset,
        )

    # ---------------------------------------------------------------- copies

    def extend(self, by_count: int) -> ArrayRegion:
        return dataclasses.replace(self, element_count=self.element_count + by_count)

    def relocate(self, new_start: int) -> ArrayRegion:
        return dataclasses.replace(self, start=new_start)

    def with_back_references(self, back_references: Iterable[int]) -> ArrayRegion:
        return dataclasses.replace(self, back_references=frozenset(back_references))

    # ---------------------------------------------------------------- text

    def serialize(self, data: ByteSource, codec: TextCodec) -> str:
        """Render every element as one line: '+' then each segment's text."""
        data = as_byte_array(data)
        lines: list[str] = []
        for index in range(self.element_count):
            address = self.element_address(index)
            parts = [EXTEND_ARRAY]
            for segment in self.segments:
                parts.append(_segment_renderer(segment.kind)(data, address, segment, codec))
                address += segment.length
            lines.append("".join(parts) + "\n")
        return "".join(lines)


def _render_delimited_text(data: np.ndarray, start: int, segment: Segment, codec: TextCodec) -> str:
    return codec.render_text(data, start, segment.length)


_SEGMENT_RENDERERS: dict[ContentKind, SegmentRenderer] = {
    ContentKind.DELIMITED_TEXT: _render_delimited_text,
}


def _segment_renderer(kind: ContentKind) -> SegmentRenderer:
    renderer = _SEGMENT_RENDERERS.get(kind)
    if renderer is None:
        raise NotImplementedError(f"No renderer for content kind: {kind}")
    return renderer


def parse_at(
    model: AddressSpaceView,
    text: str,
    address: int,
    back_references: AbstractSet[int] | None = None,
) -> ParseResult[ArrayRegion]:
    """
    Parse ``text`` and place the resulting array at ``address``.

    Args:
        model: Address space supplying bytes, known regions and anchors.
        text: Schema fragment, e.g. ``[name""13]354``.
        address: Start of the array.
        back_references: Addresses pointing at ``address``. When omitted,
            taken from the known region already starting there.

    Returns:
        ParseResult holding the ArrayRegion or the SchemaError.
    """
    parsed = parse_schema(text)
    if not parsed.ok:
        return ParseResult(error=parsed.error)
    schema = parsed.value

    if back_references is None:
        existing = region_starting_at(model, address)
        back_references = existing.back_references if existing is not None else frozenset()

    count = resolve_length(schema.length, schema.element, address, model)
    return ParseResult.success(ArrayRegion(
        start=address,
        schema_text=text,
        element=schema.element,
        length_spec=schema.length,
        element_count=count,
        back_references=frozenset(back_references),
    ))
