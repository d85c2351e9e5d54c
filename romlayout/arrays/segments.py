"""
Schema grammar for array regions.

A schema fragment describes one repeating element and how many times it
repeats:

    [name""13]          one 13-byte delimited-text segment, implied length
    [name""13]354       fixed length of 354 elements
    [name""13]movenames length taken from the array anchored as "movenames"

Parsing is total: every input produces a ParseResult holding either the
parsed value or a SchemaError, never a partially built object.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")

ARRAY_START = "["
ARRAY_END = "]"

_ANCHOR_NAME = re.compile(r"^[A-Za-z0-9_.]+$")


class ContentKind(str, Enum):
    """How the bytes of one segment are interpreted."""
    DELIMITED_TEXT = "delimited_text"


# Grammar tag -> content kind. New kinds register their tag here.
_CONTENT_TAGS: dict[str, ContentKind] = {
    '""': ContentKind.DELIMITED_TEXT,
}


@dataclass(frozen=True)
class Segment:
    """One typed, fixed-width field within an element."""
    name: str
    kind: ContentKind
    length: int


@dataclass(frozen=True)
class ElementSchema:
    """Ordered, non-empty composition of one element."""
    segments: tuple[Segment, ...]

    @property
    def element_length(self) -> int:
        return sum(s.length for s in self.segments)

    def __len__(self) -> int:
        return len(self.segments)


# ---------------------------------------------------------------------------
# Length specifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FixedLength:
    count: int


@dataclass(frozen=True)
class ImpliedByNextRun:
    pass


@dataclass(frozen=True)
class DerivedFromAnchor:
    anchor: str


LengthSpec = Union[FixedLength, ImpliedByNextRun, DerivedFromAnchor]


def length_suffix(spec: LengthSpec) -> str:
    """Text form of a length specification, as written after the ']'."""
    if isinstance(spec, FixedLength):
        return str(spec.count)
    if isinstance(spec, DerivedFromAnchor):
        return spec.anchor
    return ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SchemaError:
    """Why a schema fragment could not be parsed."""
    message: str
    text: str = ""

    def __str__(self) -> str:
        if self.text:
            return f"{self.message} (in {self.text!r})"
        return self.message


class SchemaFormatError(ValueError):
    """Raised by ParseResult.unwrap() for callers that prefer exceptions."""

    def __init__(self, error: SchemaError):
        super().__init__(str(error))
        self.error = error


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Either a parsed value or the SchemaError explaining the failure."""
    value: T | None = None
    error: SchemaError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> ParseResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, message: str, text: str = "") -> ParseResult[T]:
        return cls(error=SchemaError(message, text))

    def unwrap(self) -> T:
        if self.error is not None:
            raise SchemaFormatError(self.error)
        return self.value


@dataclass(frozen=True)
class ParsedSchema:
    """A schema fragment split into its element layout and length rule."""
    element: ElementSchema
    length: LengthSpec
    text: str


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def parse_schema(text: str) -> ParseResult[ParsedSchema]:
    """
    Parse a schema fragment such as ``[name""13]354``.

    Returns:
        ParseResult with a ParsedSchema, or with a SchemaError when the
        brackets are missing, a segment has no name, a content tag is
        unknown or has no width, no segments are given, or the length
        suffix is neither a count nor an anchor name.
    """
    close = text.rfind(ARRAY_END)
    if not text.startswith(ARRAY_START) or close == -1:
        return ParseResult.failure(
            f"Array content must be wrapped in {ARRAY_START}{ARRAY_END}", text
        )

    segments = _parse_segments(text[1:close])
    if not segments.ok:
        return ParseResult(error=segments.error)
    if not segments.value:
        return ParseResult.failure("Array content must not be empty", text)

    length = _parse_length(text[close + 1:])
    if not length.ok:
        return ParseResult(error=length.error)

    return ParseResult.success(ParsedSchema(
        element=ElementSchema(tuple(segments.value)),
        length=length.value,
        text=text,
    ))


def with_length_suffix(text: str, suffix: str) -> str:
    """Replace whatever follows the closing ']' with ``suffix``."""
    close = text.rfind(ARRAY_END)
    if close == -1:
        return text + suffix
    return text[:close + 1] + suffix


def _parse_segments(content: str) -> ParseResult[list[Segment]]:
    result: list[Segment] = []
    remaining = content.strip()

    while remaining:
        name_end = 0
        while name_end < len(remaining) and remaining[name_end].isalnum():
            name_end += 1
        name = remaining[:name_end]
        if not name:
            return ParseResult.failure("expected name, but none was found", remaining)
        remaining = remaining[name_end:]

        kind = None
        for tag, tag_kind in _CONTENT_TAGS.items():
            if remaining.startswith(tag):
                kind = tag_kind
                remaining = remaining[len(tag):]
                break
        if kind is None:
            return ParseResult.failure(f"could not parse format for segment '{name}'", remaining)

        digits_end = 0
        while digits_end < len(remaining) and remaining[digits_end].isdecimal():
            digits_end += 1
        if digits_end == 0:
            return ParseResult.failure(f"segment '{name}' is missing its byte length", remaining)
        width = int(remaining[:digits_end])
        if width <= 0:
            return ParseResult.failure(f"segment '{name}' must be at least one byte wide", remaining)

        result.append(Segment(name=name, kind=kind, length=width))
        remaining = remaining[digits_end:].strip()

    return ParseResult.success(result)


def _parse_length(suffix: str) -> ParseResult[LengthSpec]:
    suffix = suffix.strip()
    if not suffix:
        return ParseResult.success(ImpliedByNextRun())
    if suffix.isdecimal():
        return ParseResult.success(FixedLength(int(suffix)))
    if _ANCHOR_NAME.match(suffix):
        return ParseResult.success(DerivedFromAnchor(suffix))
    return ParseResult.failure("length must be a count or an anchor name", suffix)
