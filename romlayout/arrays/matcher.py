"""
Structural matching of one array element against raw bytes.

The traversal is shared by every content kind; each kind only supplies a
segment check through _SEGMENT_MATCHERS.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from .protocols import ByteSource, TextCodec, as_byte_array
from .segments import ContentKind, Segment

FILL_BYTE = 0xFF
PAD_BYTE = 0x00

# (data, start, segment, codec, is_single_segment) -> bool
SegmentMatcher = Callable[[np.ndarray, int, Segment, TextCodec, bool], bool]


def matches(
    data: ByteSource,
    address: int,
    segments: Sequence[Segment],
    codec: TextCodec,
) -> bool:
    """
    Check whether the bytes at ``address`` form one valid element.

    Args:
        data: The whole address space.
        address: Candidate element start.
        segments: Element layout, in order.
        codec: Text codec used by delimited-text segments.

    Returns:
        False as soon as any segment would read past the end of the data
        or fails its content check.
    """
    data = as_byte_array(data)
    if address < 0:
        return False

    is_single_segment = len(segments) == 1
    for segment in segments:
        if address + segment.length > len(data):
            return False
        if not _segment_matcher(segment.kind)(data, address, segment, codec, is_single_segment):
            return False
        address += segment.length
    return True


def count_matches(
    data: ByteSource,
    address: int,
    segments: Sequence[Segment],
    codec: TextCodec,
    limit: int | None = None,
) -> int:
    """Count consecutive matching elements starting at ``address``."""
    data = as_byte_array(data)
    element_length = sum(s.length for s in segments)
    count = 0
    while limit is None or count < limit:
        if not matches(data, address + count * element_length, segments, codec):
            break
        count += 1
    return count


def _match_delimited_text(
    data: np.ndarray,
    start: int,
    segment: Segment,
    codec: TextCodec,
    is_single_segment: bool,
) -> bool:
    read_length = codec.measure_text(data, start, segment.length)
    if read_length is None:
        return False
    if read_length > segment.length:
        return False

    span = data[start:start + segment.length]
    # uninitialized memory is never a string
    if np.all(span == FILL_BYTE):
        return False

    padding = span[read_length:]
    if not np.all((padding == PAD_BYTE) | (padding == FILL_BYTE)):
        return False

    # a lone text segment followed by 0x00 is more likely stray text than an element
    end = start + segment.length
    if is_single_segment and end < len(data) and data[end] == PAD_BYTE:
        return False

    return True


_SEGMENT_MATCHERS: dict[ContentKind, SegmentMatcher] = {
    ContentKind.DELIMITED_TEXT: _match_delimited_text,
}


def _segment_matcher(kind: ContentKind) -> SegmentMatcher:
    matcher = _SEGMENT_MATCHERS.get(kind)
    if matcher is None:
        raise NotImplementedError(f"No matcher for content kind: {kind}")
    return matcher
