"""Shared fixtures and byte builders for romlayout tests."""
from __future__ import annotations

import struct
from pathlib import Path
from typing import Callable

import pytest

from romlayout.config import FIRERED
from romlayout.memory import AddressSpace, AsciiTextCodec

POINTER_BASE = 0x08000000

MOVE_NAMES = ["Pound", "Karate Chop", "Double Slap", "Comet Punch", "Mega Punch", "Pay Day"]
POKEMON_NAMES = ["Bulbasaur", "Ivysaur", "Venusaur", "Charmander", "Charmeleon"]
TRAINER_CLASSES = ["Youngster", "Bug Catcher", "Lass", "Sailor"]
ABILITY_NAMES = ["Stench", "Drizzle", "Speed Boost"]
TYPE_NAMES = ["Normal", "Fight", "Flying", "Poison"]

# destination, cell width, names
FIRERED_TABLES = [
    (0x400, 13, MOVE_NAMES),
    (0x600, 11, POKEMON_NAMES),
    (0x800, 13, TRAINER_CLASSES),
    (0x900, 13, ABILITY_NAMES),
    (0xA00, 7, TYPE_NAMES),
]


def name_table(names: list[str], width: int) -> bytes:
    """Concatenated fixed-width cells: text, 0xFF terminator, 0x00 padding."""
    codec = AsciiTextCodec()
    return b"".join(codec.encode(name, width) for name in names)


def blank_image(size: int, fill: int = 0xFF) -> bytearray:
    return bytearray([fill]) * size


def put_pointer(image: bytearray, source: int, destination: int) -> None:
    struct.pack_into("<I", image, source, POINTER_BASE + destination)


def build_gba_image(code: str, tables: list[tuple[int, int, list[str]]], pointer_table: int | None = 0x300) -> bytearray:
    """Small GBA-shaped image: header, a run of pointers, then the name tables."""
    image = blank_image(0x1000)
    image[0xA0:0xAC] = b"POKEMON FIRE"
    image[0xAC:0xB0] = code.encode("ascii")
    image[0xB0:0xB2] = b"01"
    for index, (destination, width, names) in enumerate(tables):
        if pointer_table is not None:
            put_pointer(image, pointer_table + 4 * index, destination)
        table = name_table(names, width)
        image[destination:destination + len(table)] = table
    return image


@pytest.fixture
def codec() -> AsciiTextCodec:
    return AsciiTextCodec()


@pytest.fixture
def table() -> Callable[[list[str], int], bytes]:
    return name_table


@pytest.fixture
def blank() -> Callable[..., bytearray]:
    return blank_image


@pytest.fixture
def firered_image() -> bytearray:
    return build_gba_image(FIRERED, FIRERED_TABLES)


@pytest.fixture
def firered_space(firered_image: bytearray) -> AddressSpace:
    return AddressSpace(firered_image)


@pytest.fixture
def firered_path(tmp_path: Path, firered_image: bytearray) -> Path:
    path = tmp_path / "firered.gba"
    path.write_bytes(bytes(firered_image))
    return path
