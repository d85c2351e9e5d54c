"""
Reference delimited-text codec.

Strings are printable ASCII (0x20-0x7E) ended by a single 0xFF byte, the
same terminator convention GBA games use. Game-specific character tables
plug in by providing the same measure_text / render_text pair.
"""

from __future__ import annotations

import numpy as np

TERMINATOR = 0xFF
PRINTABLE_MIN = 0x20
PRINTABLE_MAX = 0x7E


class AsciiTextCodec:
    """Printable ASCII terminated by 0xFF."""

    terminator = TERMINATOR

    @staticmethod
    def is_character(value: int) -> bool:
        return PRINTABLE_MIN <= value <= PRINTABLE_MAX

    def measure_text(self, data: np.ndarray, address: int, max_length: int) -> int | None:
        """
        Measure the string at ``address``.

        Returns:
            Bytes consumed including the terminator, or None if a
            non-text byte, the end of data, or ``max_length`` is reached
            before the terminator.
        """
        end = min(address + max_length, len(data))
        for index in range(address, end):
            value = int(data[index])
            if value == self.terminator:
                return index - address + 1
            if not self.is_character(value):
                return None
        return None

    def render_text(self, data: np.ndarray, address: int, length: int) -> str:
        """Quote the characters before the terminator, escaping as needed."""
        chars: list[str] = []
        end = min(address + length, len(data))
        for index in range(address, end):
            value = int(data[index])
            if value == self.terminator:
                break
            if not self.is_character(value):
                chars.append(f"\\x{value:02X}")
            elif chr(value) in '"\\':
                chars.append("\\" + chr(value))
            else:
                chars.append(chr(value))
        return '"' + "".join(chars) + '"'

    def encode(self, text: str, width: int, pad: int = 0x00) -> bytes:
        """
        Encode ``text`` into a fixed-width cell: characters, terminator, padding.

        Raises:
            ValueError: If the text has unencodable characters or does not fit.
        """
        raw = text.encode("ascii")
        if any(not self.is_character(b) for b in raw):
            raise ValueError(f"Text contains non-printable characters: {text!r}")
        if len(raw) + 1 > width:
            raise ValueError(f"Text {text!r} needs {len(raw) + 1} bytes, cell has {width}")
        return raw + bytes([self.terminator]) + bytes([pad]) * (width - len(raw) - 1)
