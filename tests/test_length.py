"""Tests for romlayout.arrays.length."""
from __future__ import annotations

from romlayout.arrays.length import region_starting_at, resolve_length
from romlayout.arrays.region import parse_at
from romlayout.arrays.segments import DerivedFromAnchor, FixedLength, ImpliedByNextRun, parse_schema
from romlayout.memory import AddressSpace, KnownRegion, RegionKind

NAME_4 = parse_schema('[name""4]').unwrap().element


def four_byte_names(blank, table) -> bytearray:
    """0x10..0x20 holds four names, 0x20..0x28 two more."""
    image = blank(0x30)
    image[0x10:0x20] = table(["abc", "de", "f", "ghi"], 4)
    image[0x20:0x28] = table(["xyz", "uv"], 4)
    return image


class TestFixedLength:
    def test_count_taken_as_is(self, blank) -> None:
        space = AddressSpace(blank(0x10))
        assert resolve_length(FixedLength(354), NAME_4, 0, space) == 354


class TestImpliedLength:
    def test_bounded_by_next_region(self, blank, table) -> None:
        space = AddressSpace(four_byte_names(blank, table))
        space.observe_region(KnownRegion(0x20))
        assert resolve_length(ImpliedByNextRun(), NAME_4, 0x10, space) == 4

    def test_bounded_by_end_of_data(self, blank, table) -> None:
        image = blank(0x18)
        image[0x10:0x18] = table(["abc", "de"], 4)
        space = AddressSpace(image)
        assert resolve_length(ImpliedByNextRun(), NAME_4, 0x10, space) == 2

    def test_stops_at_first_mismatch(self, blank, table) -> None:
        space = AddressSpace(four_byte_names(blank, table))
        assert resolve_length(ImpliedByNextRun(), NAME_4, 0x10, space) == 6

    def test_region_at_start_is_not_a_bound(self, blank, table) -> None:
        space = AddressSpace(four_byte_names(blank, table))
        space.observe_region(KnownRegion(0x10, back_references=frozenset({0x0})))
        space.observe_region(KnownRegion(0x20))
        assert resolve_length(ImpliedByNextRun(), NAME_4, 0x10, space) == 4

    def test_partial_element_before_bound(self, blank, table) -> None:
        space = AddressSpace(four_byte_names(blank, table))
        space.observe_region(KnownRegion(0x1E))
        assert resolve_length(ImpliedByNextRun(), NAME_4, 0x10, space) == 3


class TestDerivedLength:
    def test_missing_anchor_is_zero(self, blank) -> None:
        space = AddressSpace(blank(0x10))
        assert resolve_length(DerivedFromAnchor("missing"), NAME_4, 0, space) == 0

    def test_copies_anchored_array_count(self, blank) -> None:
        space = AddressSpace(blank(0x100))
        space.write_anchor("movenames", parse_at(space, '[name""13]7', 0x40).unwrap())
        assert resolve_length(DerivedFromAnchor("movenames"), NAME_4, 0x80, space) == 7

    def test_non_array_anchor_is_zero(self, blank) -> None:
        space = AddressSpace(blank(0x100))
        space.write_anchor("GameCode", KnownRegion(0x20, 4, RegionKind.ASCII))
        assert resolve_length(DerivedFromAnchor("GameCode"), NAME_4, 0x80, space) == 0


class TestRegionStartingAt:
    def test_exact_start_only(self, blank) -> None:
        space = AddressSpace(blank(0x100))
        space.observe_region(KnownRegion(0x40, 8))
        assert region_starting_at(space, 0x40).start == 0x40
        assert region_starting_at(space, 0x41) is None
        assert region_starting_at(space, 0x3F) is None
