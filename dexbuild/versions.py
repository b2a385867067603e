"""Canonical release chronology of the main-series games.

Used only as a sort key for flavor text; never fetched.
"""

from __future__ import annotations

from typing import Optional

VERSION_NAMES: tuple[str, ...] = (
    "red",
    "blue",
    "yellow",
    "gold",
    "silver",
    "crystal",
    "ruby",
    "sapphire",
    "emerald",
    "firered",
    "leafgreen",
    "diamond",
    "pearl",
    "platinum",
    "heartgold",
    "soulsilver",
    "black",
    "white",
    "black-2",
    "white-2",
    "x",
    "y",
    "omega-ruby",
    "alpha-sapphire",
    "sun",
    "moon",
    "ultra-sun",
    "ultra-moon",
    "lets-go-pikachu",
    "lets-go-eevee",
    "sword",
    "shield",
    "brilliant-diamond",
    "shining-pearl",
    "legends-arceus",
    "scarlet",
    "violet",
)

_POSITIONS = {name: index for index, name in enumerate(VERSION_NAMES)}


def version_position(version: str) -> Optional[int]:
    """Chronological position of ``version``, or None when it is not listed."""
    return _POSITIONS.get(version)
