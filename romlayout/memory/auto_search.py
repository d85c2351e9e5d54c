"""
Auto-discovery of well-known structures in an unannotated GBA image.

Reads the header to identify the game, anchors the header text fields,
then searches for each configured name array in order. Searching the
same schema twice finds two different arrays: once the first hit is
anchored it is an array and no longer a candidate.
"""

from __future__ import annotations

import logging

from ..arrays.protocols import Region
from ..arrays.search import search
from ..config import NameArrayConfig, SearchProfile
from ..debug.trace import Tracer
from .address_space import AddressSpace, KnownRegion, RegionKind, region_kind

log = logging.getLogger(__name__)


class AutoSearch:
    """
    Profile-driven discovery over one AddressSpace.

    Usage:
        space = AddressSpace.from_file("firered.gba")
        found = AutoSearch(space, SearchProfile()).run()
        found["movenames"]      # ArrayRegion
    """

    def __init__(
        self,
        space: AddressSpace,
        profile: SearchProfile | None = None,
        tracer: Tracer | None = None,
    ):
        self.space = space
        self.profile = profile or SearchProfile()
        self.tracer = tracer or Tracer(enabled=False)
        self.game_code = space.read_ascii(self.profile.game_code_address, 4)

    @property
    def is_supported(self) -> bool:
        return self.game_code in self.profile.supported_codes

    def run(self) -> dict[str, Region]:
        """
        Decode the header and every applicable name array.

        Returns:
            Anchor name -> region for everything anchored by this run.
            Empty when the game code is not in the profile.
        """
        if not self.is_supported:
            log.info("Game code %r is not in the search profile; nothing to decode", self.game_code)
            return {}

        with self.tracer.step("pointers"):
            if self.space.region_count == 0 and self.profile.pointers.discover:
                self.tracer.trace_pointers(self.space.discover_pointers())
            self._add_extra_pointers()

        found: dict[str, Region] = {}
        found.update(self.decode_header())
        found.update(self.decode_name_arrays())
        log.info("Decoded %d anchors for %s", len(found), self.game_code)
        return found

    def decode_header(self) -> dict[str, Region]:
        found: dict[str, Region] = {}
        with self.tracer.step("header"):
            for header_field in self.profile.header:
                if not header_field.applies_to(self.game_code):
                    continue
                region = KnownRegion(header_field.address, header_field.length, RegionKind.ASCII)
                found[header_field.name] = self._anchor(header_field.name, region)
        return found

    def decode_name_arrays(self) -> dict[str, Region]:
        found: dict[str, Region] = {}
        for entry in self.profile.arrays:
            if not entry.applies_to(self.game_code):
                continue
            region = self.find_array(entry)
            if region is not None:
                found[entry.anchor] = region
        return found

    def find_array(self, entry: NameArrayConfig) -> Region | None:
        """Search for one configured array and anchor it when found."""
        with self.tracer.step(entry.anchor):
            self.tracer.trace_search(entry.format)
            region = search(self.space, entry.format, progress=self.tracer.trace_candidate)
            if region is None:
                log.info("No match for %s %s", entry.anchor, entry.format)
                self.tracer.trace_result(entry.format, None)
                return None

            self.tracer.trace_result(entry.format, region.start, region.element_count)
            return self._anchor(entry.anchor, region)

    def _add_extra_pointers(self) -> None:
        game = self.profile.get_game(self.game_code)
        if game is None:
            return
        # only trust the pointer if its high byte still matches the pointer base
        high_byte = (self.profile.pointers.base >> 24) & 0xFF
        for source in game.extra_pointers:
            if source + 3 >= self.space.byte_count() or self.space.read_byte(source + 3) != high_byte:
                continue
            if self.space.add_pointer(source):
                log.debug("Added extra pointer at 0x%06X", source)

    def _anchor(self, name: str, region: Region) -> Region:
        region = self.space.write_anchor(name, region)
        self.tracer.trace_anchor(name, region.start, region_kind(region).value)
        log.debug("Anchored %s at 0x%06X", name, region.start)
        return region
