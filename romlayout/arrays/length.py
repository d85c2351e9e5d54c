"""
Element-count resolution for the three length specifications.
"""

from __future__ import annotations

import logging

from .matcher import matches
from .protocols import AddressSpaceView, Region
from .segments import DerivedFromAnchor, ElementSchema, FixedLength, ImpliedByNextRun, LengthSpec

log = logging.getLogger(__name__)


def resolve_length(
    length_spec: LengthSpec,
    element: ElementSchema,
    address: int,
    model: AddressSpaceView,
) -> int:
    """
    Decide how many elements an array placed at ``address`` holds.

    Fixed counts are taken as-is. Implied lengths grow one element at a
    time until the next known region or the first mismatch. Anchor-derived
    lengths copy the count of the named array, or resolve to 0 when the
    name does not lead to an array starting exactly at its address.
    """
    if isinstance(length_spec, FixedLength):
        return length_spec.count
    if isinstance(length_spec, ImpliedByNextRun):
        return _implied_length(element, address, model)
    if isinstance(length_spec, DerivedFromAnchor):
        return _length_from_anchor(length_spec.anchor, model)
    raise NotImplementedError(f"Unsupported length specification: {length_spec!r}")


def region_starting_at(model: AddressSpaceView, address: int) -> Region | None:
    """Known region beginning exactly at ``address``, if any."""
    region = model.next_region_after(address - 1)
    if region is None or region.start != address:
        return None
    return region


def _implied_length(element: ElementSchema, address: int, model: AddressSpaceView) -> int:
    next_region = model.next_region_after(address)
    bound = next_region.start if next_region is not None else model.byte_count()

    element_length = element.element_length
    consumed = 0
    count = 0
    while address + consumed + element_length <= bound and matches(
        model.data, address + consumed, element.segments, model.codec
    ):
        consumed += element_length
        count += 1
    return count


def _length_from_anchor(anchor: str, model: AddressSpaceView) -> int:
    # imported here: region.py builds on this module
    from .region import ArrayRegion

    address = model.resolve_anchor_name(anchor)
    if address is None:
        log.debug("Length anchor %r is unknown; length is zero for now", anchor)
        return 0

    region = region_starting_at(model, address)
    if not isinstance(region, ArrayRegion):
        log.debug("Length anchor %r at 0x%06X is not an array; length is zero for now", anchor, address)
        return 0

    return region.element_count
