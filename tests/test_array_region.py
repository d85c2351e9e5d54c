"""Tests for romlayout.arrays.region (array regions and offset translation)."""
from __future__ import annotations

import pytest

from romlayout.arrays.region import ArrayOffset, ArrayRegion, parse_at
from romlayout.arrays.segments import ElementSchema, FixedLength, parse_schema
from romlayout.memory import AddressSpace, KnownRegion


@pytest.fixture
def three_names(blank, table) -> AddressSpace:
    image = blank(0x40)
    image[0x10:0x1C] = table(["abc", "de", "f"], 4)
    return AddressSpace(image)


@pytest.fixture
def two_segment_space(blank, table) -> AddressSpace:
    image = blank(0x40)
    image[0x10:0x1A] = table(["ab"], 4) + table(["cdef"], 6)
    image[0x1A:0x24] = table(["gh"], 4) + table(["ij"], 6)
    return AddressSpace(image)


class TestParseAt:
    def test_fixed_length_array(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        assert region.start == 0x10
        assert region.element_count == 3
        assert region.element_length == 4
        assert region.total_length == 12
        assert region.length == 12
        assert region.end == 0x1C
        assert region.length_spec == FixedLength(3)
        assert region.schema_text == '[name""4]3'

    def test_fixed_count_ignores_content(self, three_names) -> None:
        assert parse_at(three_names, '[name""4]100', 0x10).unwrap().element_count == 100

    def test_implied_length(self, three_names) -> None:
        assert parse_at(three_names, '[name""4]', 0x10).unwrap().element_count == 3

    def test_schema_error(self, three_names) -> None:
        result = parse_at(three_names, '[name""]', 0x10)
        assert not result.ok
        assert result.value is None

    def test_back_references_from_existing_region(self, three_names) -> None:
        three_names.observe_region(KnownRegion(0x10, back_references=frozenset({0x30, 0x34})))
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        assert region.back_references == {0x30, 0x34}

    def test_explicit_back_references(self, three_names) -> None:
        three_names.observe_region(KnownRegion(0x10, back_references=frozenset({0x30})))
        region = parse_at(three_names, '[name""4]3', 0x10, back_references={0x38}).unwrap()
        assert region.back_references == {0x38}


class TestInvariants:
    def test_total_length(self, two_segment_space) -> None:
        region = parse_at(two_segment_space, '[name""4 desc""6]2', 0x10).unwrap()
        assert region.element_length == sum(s.length for s in region.segments) == 10
        assert region.total_length == region.element_length * region.element_count == 20

    def test_negative_count_rejected(self) -> None:
        element = parse_schema('[name""4]').unwrap().element
        with pytest.raises(ValueError):
            ArrayRegion(0, '[name""4]', element, FixedLength(-1), -1)

    def test_empty_schema_rejected(self) -> None:
        with pytest.raises(ValueError):
            ArrayRegion(0, "[]", ElementSchema(()), FixedLength(0), 0)

    def test_empty_array(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]0', 0x10).unwrap()
        assert region.total_length == 0
        assert region.serialize(three_names.data, three_names.codec) == ""


class TestToOffset:
    def test_first_byte(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        assert region.to_offset(0x10) == ArrayOffset(0, 0, 0x10, 0)

    def test_inside_second_segment(self, two_segment_space) -> None:
        region = parse_at(two_segment_space, '[name""4 desc""6]2', 0x10).unwrap()
        assert region.to_offset(0x1F) == ArrayOffset(
            element_index=1, segment_index=1, segment_start=0x1E, segment_offset=1,
        )

    def test_segment_boundary(self, two_segment_space) -> None:
        region = parse_at(two_segment_space, '[name""4 desc""6]2', 0x10).unwrap()
        offset = region.to_offset(0x14)
        assert (offset.element_index, offset.segment_index, offset.segment_offset) == (0, 1, 0)

    def test_inverse_law(self, two_segment_space) -> None:
        region = parse_at(two_segment_space, '[name""4 desc""6]2', 0x10).unwrap()
        for address in range(region.start, region.end):
            offset = region.to_offset(address)
            preceding = sum(s.length for s in region.segments[:offset.segment_index])
            assert region.element_address(offset.element_index) + preceding + offset.segment_offset == address
            assert offset.segment_start == address - offset.segment_offset
            assert 0 <= offset.segment_offset < region.segments[offset.segment_index].length

    @pytest.mark.parametrize("address", [0x0F, 0x1C, 0x100])
    def test_out_of_range(self, three_names, address) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        with pytest.raises(ValueError):
            region.to_offset(address)


class TestCopies:
    def test_extend(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10, back_references={0x30}).unwrap()
        longer = region.extend(2)
        assert longer.element_count == 5
        assert longer.total_length == 20
        assert longer.start == region.start
        assert longer.schema_text == region.schema_text
        assert longer.element is region.element
        assert longer.back_references == region.back_references
        assert region.element_count == 3

    def test_relocate(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10, back_references={0x30}).unwrap()
        moved = region.relocate(0x20)
        assert moved.start == 0x20
        assert moved.element_count == region.element_count
        assert moved.schema_text == region.schema_text
        assert moved.back_references == region.back_references
        assert region.start == 0x10

    def test_with_back_references(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        updated = region.with_back_references([0x30, 0x34])
        assert updated.back_references == frozenset({0x30, 0x34})
        assert region.back_references == frozenset()

    def test_frozen(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        with pytest.raises(AttributeError):
            region.start = 0


class TestSerialize:
    def test_one_line_per_element(self, three_names) -> None:
        region = parse_at(three_names, '[name""4]3', 0x10).unwrap()
        text = region.serialize(three_names.data, three_names.codec)
        assert text == '+"abc"\n+"de"\n+"f"\n'

    def test_segments_are_concatenated(self, two_segment_space) -> None:
        region = parse_at(two_segment_space, '[name""4 desc""6]2', 0x10).unwrap()
        text = region.serialize(two_segment_space.data, two_segment_space.codec)
        assert text.splitlines() == ['+"ab""cdef"', '+"gh""ij"']
