"""
Array layout engine: schema grammar, structural matching, length
resolution, heuristic search and offset translation for repeating
structures inside a flat byte address space.

Every operation is a pure function of the bytes and known regions it is
handed; the owning address space keeps all mutable state.
"""

from .length import resolve_length
from .matcher import matches, count_matches
from .protocols import AddressSpaceView, Region, TextCodec
from .region import ArrayOffset, ArrayRegion, parse_at
from .search import search
from .segments import (
    ContentKind,
    DerivedFromAnchor,
    ElementSchema,
    FixedLength,
    ImpliedByNextRun,
    LengthSpec,
    ParsedSchema,
    ParseResult,
    SchemaError,
    SchemaFormatError,
    Segment,
    parse_schema,
    with_length_suffix,
)

__all__ = [
    "AddressSpaceView",
    "ArrayOffset",
    "ArrayRegion",
    "ContentKind",
    "DerivedFromAnchor",
    "ElementSchema",
    "FixedLength",
    "ImpliedByNextRun",
    "LengthSpec",
    "ParsedSchema",
    "ParseResult",
    "Region",
    "SchemaError",
    "SchemaFormatError",
    "Segment",
    "TextCodec",
    "count_matches",
    "matches",
    "parse_at",
    "parse_schema",
    "resolve_length",
    "search",
    "with_length_suffix",
]
