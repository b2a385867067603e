"""Naming helpers.

Centralizes localized-name selection and flavor-text normalization.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

_WHITESPACE_RE = re.compile(r"\s+")


def clean_flavor_text(value: str) -> str:
    """Normalize PokéAPI flavor text to a single trimmed line.

    Form feeds become spaces, whitespace runs collapse to one space.
    """
    return _WHITESPACE_RE.sub(" ", value.replace("\f", " ")).strip()


def language_of(entry: Any) -> Optional[str]:
    if not isinstance(entry, dict):
        return None
    return (entry.get("language") or {}).get("name")


def pick_localized(entries: Any, field: str, language: str) -> Optional[str]:
    """Return ``field`` of the first entry in ``language``, if any."""
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if language_of(entry) != language:
            continue
        value = entry.get(field)
        if isinstance(value, str):
            return value
    return None


def in_language(entries: Any, language: str) -> Iterable[dict]:
    if not isinstance(entries, list):
        return []
    return [e for e in entries if language_of(e) == language]
