"""
Read-only collaborator interfaces consumed by the array layout engine.

The engine never owns bytes or known regions. It reads them through these
protocols, so any owner model (a ROM image, a memory snapshot, a test
fixture) can drive parsing and searching.
"""

from __future__ import annotations

from typing import AbstractSet, Protocol, Sequence, Union

import numpy as np

ByteSource = Union[bytes, bytearray, memoryview, Sequence[int], np.ndarray]


class Region(Protocol):
    """Anything that occupies a known address range."""

    @property
    def start(self) -> int: ...

    @property
    def length(self) -> int: ...

    @property
    def back_references(self) -> AbstractSet[int]: ...


class TextCodec(Protocol):
    """Success/failure contract of the delimited-text codec."""

    def measure_text(self, data: np.ndarray, address: int, max_length: int) -> int | None:
        """Return the consumed byte count (terminator included), or None if not text."""
        ...

    def render_text(self, data: np.ndarray, address: int, length: int) -> str:
        ...


class AddressSpaceView(Protocol):
    """Narrow read/query view of the owner model."""

    @property
    def data(self) -> np.ndarray: ...

    @property
    def codec(self) -> TextCodec: ...

    def byte_count(self) -> int: ...

    def read_byte(self, address: int) -> int: ...

    def next_region_after(self, address: int) -> Region | None: ...

    def resolve_anchor_name(self, name: str) -> int | None: ...


def as_byte_array(data: ByteSource) -> np.ndarray:
    """View any byte source as a flat uint8 array (no copy for ndarrays)."""
    if isinstance(data, np.ndarray):
        return data.astype(np.uint8, copy=False).reshape(-1)
    if isinstance(data, (bytes, bytearray, memoryview)):
        return np.frombuffer(bytes(data), dtype=np.uint8)
    return np.asarray(list(data), dtype=np.uint8)
