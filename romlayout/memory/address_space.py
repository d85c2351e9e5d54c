"""
In-memory address space over a ROM image.

Holds the raw bytes, the regions already known inside them (pointer
destinations, pointers, header fields, arrays) and the anchor table that
names some of those regions. The array engine reads it through the
AddressSpaceView protocol; this module is the only place that mutates
known-region state.
"""

from __future__ import annotations

import bisect
import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

import numpy as np

from ..arrays.protocols import ByteSource, Region, TextCodec, as_byte_array
from ..arrays.region import ArrayRegion, parse_at
from ..arrays.segments import DerivedFromAnchor
from ..config import PointerConfig
from .text_codec import AsciiTextCodec

log = logging.getLogger(__name__)

POINTER_SIZE = 4


class RegionKind(str, Enum):
    """What is known about a region."""
    NO_INFO = "no_info"     # something points here, nothing more
    POINTER = "pointer"
    ASCII = "ascii"
    ARRAY = "array"


@dataclass(frozen=True)
class KnownRegion:
    """A region that is not an array."""
    start: int
    length: int = 1
    kind: RegionKind = RegionKind.NO_INFO
    back_references: frozenset[int] = frozenset()

    def __repr__(self) -> str:
        return (
            f"KnownRegion(0x{self.start:06X}, {self.kind.value}, "
            f"length={self.length}, refs={len(self.back_references)})"
        )


def region_kind(region: Region) -> RegionKind:
    if isinstance(region, ArrayRegion):
        return RegionKind.ARRAY
    return getattr(region, "kind", RegionKind.NO_INFO)


class AddressSpace:
    """
    Read-only byte image plus known regions and anchors.

    Usage:
        space = AddressSpace.from_file("game.gba")
        space.discover_pointers()
        region = search(space, '[name""13]')
        space.write_anchor("movenames", region)
    """

    def __init__(
        self,
        data: ByteSource,
        codec: TextCodec | None = None,
        pointers: PointerConfig | None = None,
    ):
        array = np.array(as_byte_array(data), dtype=np.uint8)
        array.setflags(write=False)
        self._data = array
        self._codec = codec or AsciiTextCodec()
        self._pointers = pointers or PointerConfig()
        self._regions: dict[int, Region] = {}
        self._starts: list[int] = []            # sorted keys of _regions
        self._anchors: dict[str, int] = {}      # name -> address

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        codec: TextCodec | None = None,
        pointers: PointerConfig | None = None,
    ) -> AddressSpace:
        """Load an image file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")
        space = cls(path.read_bytes(), codec=codec, pointers=pointers)
        log.info("Loaded %s (%d bytes)", path.name, space.byte_count())
        return space

    # ─── Byte access ───────────────────────────────────────────

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def codec(self) -> TextCodec:
        return self._codec

    def byte_count(self) -> int:
        return len(self._data)

    def read_byte(self, address: int) -> int:
        if not 0 <= address < len(self._data):
            raise IndexError(f"Address 0x{address:X} is outside the image (size 0x{len(self._data):X})")
        return int(self._data[address])

    def read_ascii(self, address: int, length: int) -> str:
        raw = bytes(self._data[address:address + length])
        return raw.decode("ascii", errors="replace")

    def read_pointer(self, address: int) -> int | None:
        """Destination of the pointer stored at ``address``, if it is one."""
        if address < 0 or address + POINTER_SIZE > len(self._data):
            return None
        word = int.from_bytes(bytes(self._data[address:address + POINTER_SIZE]), "little")
        destination = word - self._pointers.base
        if not 0 <= destination < len(self._data):
            return None
        return destination

    # ─── Region queries ────────────────────────────────────────

    def next_region_after(self, address: int) -> Region | None:
        """First known region starting strictly after ``address``."""
        index = bisect.bisect_right(self._starts, address)
        if index >= len(self._starts):
            return None
        return self._regions[self._starts[index]]

    def region_at(self, address: int) -> Region | None:
        return self._regions.get(address)

    def regions(self) -> Iterator[Region]:
        for start in list(self._starts):
            yield self._regions[start]

    @property
    def region_count(self) -> int:
        return len(self._starts)

    # ─── Anchors ───────────────────────────────────────────────

    def resolve_anchor_name(self, name: str) -> int | None:
        return self._anchors.get(name)

    @property
    def anchors(self) -> dict[str, int]:
        return dict(self._anchors)

    def anchors_at(self, address: int) -> list[str]:
        return [name for name, start in self._anchors.items() if start == address]

    # ─── Mutation ──────────────────────────────────────────────

    def observe_region(self, region: Region) -> Region:
        """
        Record ``region``, replacing whatever region started at the same address.

        Back-references of the replaced region are carried over when the
        new region has none of its own.
        """
        existing = self._regions.get(region.start)
        if existing is None:
            bisect.insort(self._starts, region.start)
        elif existing.back_references and not region.back_references:
            region = dataclasses.replace(region, back_references=frozenset(existing.back_references))
        self._regions[region.start] = region
        return region

    def write_anchor(self, name: str, region: Region) -> Region:
        """Record ``region`` under ``name`` and refresh arrays whose length derives from it."""
        region = self.observe_region(region)
        self._anchors[name] = region.start
        log.debug("Anchor %s -> 0x%06X (%s)", name, region.start, region_kind(region).value)
        self._refresh_dependents(name, {name})
        return region

    def add_pointer(self, source: int) -> bool:
        """Register the pointer stored at ``source``; False if it is not one."""
        destination = self.read_pointer(source)
        if destination is None:
            return False
        self._register_pointer(source, destination)
        return True

    def discover_pointers(self) -> int:
        """
        Find every aligned pointer into the image.

        A word counts when it lands inside the image at or after the
        earliest allowed anchor. Each hit records a pointer region at the
        source and a back-reference at the destination.

        Returns:
            Number of pointers found.
        """
        usable = len(self._data) - len(self._data) % POINTER_SIZE
        if usable == 0:
            return 0

        words = self._data[:usable].view("<u4").astype(np.int64)
        targets = words - self._pointers.base
        mask = (targets >= self._pointers.earliest_allowed_anchor) & (targets < len(self._data))
        sources = np.flatnonzero(mask) * POINTER_SIZE

        for source, target in zip(sources.tolist(), targets[mask].tolist()):
            self._register_pointer(source, target)

        log.info("Discovered %d pointers", len(sources))
        return len(sources)

    def _register_pointer(self, source: int, destination: int) -> None:
        if not isinstance(self._regions.get(source), ArrayRegion):
            self.observe_region(KnownRegion(source, POINTER_SIZE, RegionKind.POINTER))
        existing = self._regions.get(destination)
        if existing is None:
            self.observe_region(KnownRegion(destination, back_references=frozenset({source})))
        else:
            self._regions[destination] = dataclasses.replace(
                existing, back_references=frozenset(existing.back_references) | {source}
            )

    def _refresh_dependents(self, name: str, visited: set[str]) -> None:
        dependency = DerivedFromAnchor(name)
        for region in list(self._regions.values()):
            if not isinstance(region, ArrayRegion) or region.length_spec != dependency:
                continue
            refreshed = parse_at(self, region.schema_text, region.start, region.back_references)
            if not refreshed.ok or refreshed.value.element_count == region.element_count:
                continue
            self._regions[region.start] = refreshed.value
            log.debug(
                "Array at 0x%06X now has %d elements (follows %s)",
                region.start, refreshed.value.element_count, name,
            )
            for anchor in self.anchors_at(region.start):
                if anchor not in visited:
                    visited.add(anchor)
                    self._refresh_dependents(anchor, visited)
