"""
Heuristic auto-detection of array regions.

The search walks every known region that something points to and counts
how many consecutive elements of the schema fit there. The longest run
wins. This is a full synchronous scan of the address space; callers that
need responsiveness must run it off their latency-sensitive path.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from .matcher import count_matches
from .protocols import AddressSpaceView, Region
from .region import ArrayRegion
from .segments import FixedLength, parse_schema, with_length_suffix

log = logging.getLogger(__name__)

# progress(candidate_address, element_count)
SearchProgress = Callable[[int, int], None]


def search(
    model: AddressSpaceView,
    schema_text: str,
    progress: SearchProgress | None = None,
) -> ArrayRegion | None:
    """
    Find the best placement for ``schema_text`` among the known regions.

    Candidates are known regions that are not already arrays and carry at
    least one back-reference. Ties keep the earliest candidate.

    Returns:
        An ArrayRegion pinned to a fixed length, whose schema text carries
        the discovered count, or None when nothing matched (or the schema
        text is malformed).
    """
    parsed = parse_schema(schema_text)
    if not parsed.ok:
        log.warning("Cannot search for malformed schema: %s", parsed.error)
        return None
    segments = parsed.value.element.segments

    best: Region | None = None
    best_count = 0

    for candidate in iter_candidates(model):
        count = count_matches(model.data, candidate.start, segments, model.codec)
        if progress is not None:
            progress(candidate.start, count)
        if best_count < count:
            best_count = count
            best = candidate

    if best is None:
        log.debug("No placement found for %s", schema_text)
        return None

    log.debug("Best placement for %s: 0x%06X x%d", schema_text, best.start, best_count)
    return ArrayRegion(
        start=best.start,
        schema_text=with_length_suffix(schema_text, str(best_count)),
        element=parsed.value.element,
        length_spec=FixedLength(best_count),
        element_count=best_count,
        back_references=frozenset(best.back_references),
    )


def iter_candidates(model: AddressSpaceView) -> Iterator[Region]:
    """
    Known regions, in address order, that are worth guessing at.

    The walk steps over each region's full extent, so regions lying inside
    an array (stray pointers into its middle) are never candidates.
    """
    region = model.next_region_after(-1)
    while region is not None:
        if not isinstance(region, ArrayRegion) and region.back_references:
            yield region
        region = model.next_region_after(region.start + max(region.length, 1) - 1)
