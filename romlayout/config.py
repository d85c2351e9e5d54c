"""
Search profiles for romlayout.
Uses Pydantic for validation and TOML for file format.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import BaseModel, Field, field_validator

from .arrays.segments import parse_schema

RUBY = "AXVE"
SAPPHIRE = "AXPE"
EMERALD = "BPEE"
FIRERED = "BPRE"
LEAFGREEN = "BPGE"

RSE = [RUBY, SAPPHIRE, EMERALD]
FRLG = [FIRERED, LEAFGREEN]


class PointerConfig(BaseModel):
    """How pointers are recognized inside the image."""
    base: int = 0x08000000
    # The first 0x100 bytes are the header and the next 0x100 hold startup
    # tables nothing interesting points into.
    earliest_allowed_anchor: int = 0x200
    discover: bool = True

    @field_validator("base", "earliest_allowed_anchor")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Pointer settings must be non-negative")
        return v


class GameConfig(BaseModel):
    """A supported game, identified by its 4-character header code."""
    code: str
    name: str = ""
    extra_pointers: list[int] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if len(v) != 4:
            raise ValueError("Game codes are exactly 4 characters")
        return v


class HeaderField(BaseModel):
    """Fixed-width ASCII field in the image header."""
    name: str
    address: int
    length: int
    exclude_games: list[str] = Field(default_factory=list)

    @field_validator("length")
    @classmethod
    def validate_length(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Header fields must be at least one byte long")
        return v

    def applies_to(self, code: str) -> bool:
        return code not in self.exclude_games


class NameArrayConfig(BaseModel):
    """An array to look for, and the anchor name to give it."""
    anchor: str
    format: str
    games: list[str] = Field(default_factory=list)  # empty: every game

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        parse_schema(v).unwrap()
        return v

    def applies_to(self, code: str) -> bool:
        return not self.games or code in self.games


def _default_games() -> list[GameConfig]:
    return [
        GameConfig(code=RUBY, name="Ruby"),
        GameConfig(code=SAPPHIRE, name="Sapphire"),
        # in vanilla emerald this pointer isn't four-byte aligned
        GameConfig(code=EMERALD, name="Emerald", extra_pointers=[0x1C0]),
        GameConfig(code=FIRERED, name="FireRed"),
        GameConfig(code=LEAFGREEN, name="LeafGreen"),
    ]


def _default_header() -> list[HeaderField]:
    return [
        HeaderField(name="GameTitle", address=0xA0, length=12),
        HeaderField(name="GameCode", address=0xAC, length=4),
        HeaderField(name="MakerCode", address=0xB0, length=2),
        HeaderField(name="RomName", address=0x108, length=0x20, exclude_games=[RUBY, SAPPHIRE]),
    ]


def _default_arrays() -> list[NameArrayConfig]:
    return [
        NameArrayConfig(anchor="movenames", format='[name""13]'),
        NameArrayConfig(anchor="pokenames", format='[name""11]'),
        # the same schema finds a different array each time, so order matters
        NameArrayConfig(anchor="abilitynames", format='[name""13]', games=RSE),
        NameArrayConfig(anchor="trainerclassnames", format='[name""13]', games=RSE),
        NameArrayConfig(anchor="trainerclassnames", format='[name""13]', games=FRLG),
        NameArrayConfig(anchor="abilitynames", format='[name""13]', games=FRLG),
        NameArrayConfig(anchor="types", format='[name""7]'),
    ]


class SearchProfile(BaseModel):
    """Complete auto-discovery configuration."""
    game_code_address: int = 0xAC
    pointers: PointerConfig = Field(default_factory=PointerConfig)
    games: list[GameConfig] = Field(default_factory=_default_games)
    header: list[HeaderField] = Field(default_factory=_default_header)
    arrays: list[NameArrayConfig] = Field(default_factory=_default_arrays)

    @classmethod
    def from_toml(cls, path: str | Path) -> SearchProfile:
        """Load search profile from TOML file."""
        path = Path(path)
        with path.open("rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Export profile as dictionary."""
        return self.model_dump()

    @property
    def supported_codes(self) -> list[str]:
        return [g.code for g in self.games]

    def get_game(self, code: str) -> GameConfig | None:
        for game in self.games:
            if game.code == code:
                return game
        return None
