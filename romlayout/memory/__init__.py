"""
Address-space model for romlayout.

Holds a ROM image, the regions already known inside it and the anchor
table, and drives profile-based auto-discovery on top of the array engine.
"""

from .address_space import AddressSpace, KnownRegion, RegionKind, region_kind
from .auto_search import AutoSearch
from .text_codec import AsciiTextCodec

__all__ = [
    "AddressSpace",
    "AsciiTextCodec",
    "AutoSearch",
    "KnownRegion",
    "RegionKind",
    "region_kind",
]
