"""Transform layer for the Pokédex data build.

Turns a cached form record and its species record into a dex entry:
- localized name and category (English preferred)
- sprite fallback chain and download
- types, stats and dimensions
- flavor texts ordered by release chronology
- the species' variety list
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from .fetch import (
    ContentKind,
    FetchError,
    ResourceRequest,
    fetch_cached,
    pokemon_url,
    sprite_url,
)
from .naming import clean_flavor_text, in_language, pick_localized
from .versions import VERSION_NAMES, version_position

if TYPE_CHECKING:
    from .build import BuildContext

logger = logging.getLogger(__name__)

EntryId = Union[int, str]

SPRITE_KEYS = ("front_default", "front_female", "front_shiny", "front_shiny_female")


def pokemon_path(data_dir: str, entry_id: EntryId) -> str:
    return os.path.join(data_dir, "pokemon", f"{entry_id}.json")


def species_path(data_dir: str, entry_id: EntryId) -> str:
    return os.path.join(data_dir, "pokemon-species", f"{entry_id}.json")


def sprite_path(data_dir: str, name: EntryId, ext: str = "png") -> str:
    return os.path.join(data_dir, "sprites", f"{name}.{ext}")


def sprite_candidates(pokemon_data: Dict[str, Any], entry_id: EntryId, template: str) -> List[str]:
    """Ordered image sources: official artwork, then standard sprites, then the fallback."""
    sprites = pokemon_data.get("sprites") or {}
    other = sprites.get("other") or {}
    official = other.get("official-artwork") or {}

    candidates = [official.get(key) for key in SPRITE_KEYS]
    candidates += [sprites.get(key) for key in SPRITE_KEYS]
    candidates.append(sprite_url(template, entry_id))
    return [url for url in candidates if url]


def version_order(species_data: Dict[str, Any], language: str) -> List[str]:
    """Versions with flavor text in ``language``, in release order.

    Versions missing from the canonical chronology are logged and skipped.
    """
    known = []
    for entry in in_language(species_data.get("flavor_text_entries"), language):
        version = (entry.get("version") or {}).get("name")
        if version_position(version) is None:
            logger.warning("Skipping flavor text for unknown version %r", version)
            continue
        known.append(version)

    ordered = sorted(known, key=version_position)
    # dict.fromkeys keeps the first occurrence of each version
    return list(dict.fromkeys(ordered))


def build_flavor_texts(species_data: Dict[str, Any], language: str) -> Dict[str, str]:
    """Map each canonical version to its cleaned flavor text, if present."""
    entries = list(in_language(species_data.get("flavor_text_entries"), language))
    texts: Dict[str, str] = {}
    for version in VERSION_NAMES:
        for entry in entries:
            if (entry.get("version") or {}).get("name") != version:
                continue
            text = entry.get("flavor_text")
            if isinstance(text, str):
                texts[version] = clean_flavor_text(text)
            break
    return texts


def build_varieties(species_data: Dict[str, Any], default_id: int) -> List[Dict[str, Any]]:
    varieties = []
    for v in species_data.get("varieties") or []:
        pokemon = v.get("pokemon") or {}
        is_default = bool(v.get("is_default"))
        varieties.append(
            {
                "id": default_id if is_default else pokemon.get("name"),
                "name": pokemon.get("name"),
                "is_default": is_default,
                "url": pokemon.get("url"),
            }
        )
    return varieties


def build_entry(
    ctx: "BuildContext",
    entry_id: EntryId,
    entry_url: Optional[str] = None,
    default_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Fetch (or reuse cached) records for one form and derive its dex entry.

    ``entry_url`` is required for non-default varieties, whose ``entry_id``
    is the variety name; default forms derive the URL from their numeric id.
    Every type seen is added to ``ctx.types``.
    """
    if default_id is None:
        default_id = int(entry_id)
    url = entry_url or pokemon_url(ctx.base_url, int(entry_id))

    pokemon_data = fetch_cached(
        ResourceRequest(url, pokemon_path(ctx.data_dir, entry_id)),
        session=ctx.session,
        timeout=ctx.timeout,
    )
    species_url = (pokemon_data.get("species") or {}).get("url")
    if not species_url:
        raise FetchError(f"Pokemon record {entry_id} has no species link")
    species_data = fetch_cached(
        ResourceRequest(species_url, species_path(ctx.data_dir, entry_id)),
        session=ctx.session,
        timeout=ctx.timeout,
    )

    local_sprite = sprite_path(ctx.data_dir, entry_id)
    fetch_cached(
        ResourceRequest(
            sprite_candidates(pokemon_data, entry_id, ctx.sprite_url_template),
            local_sprite,
            kind=ContentKind.BINARY,
            allow_failure=True,
        ),
        session=ctx.session,
        timeout=ctx.timeout,
    )

    types = [t["type"]["name"] for t in pokemon_data.get("types") or []]
    flavor_texts = build_flavor_texts(species_data, ctx.language)
    entry = {
        "id": entry_id,
        "dex_id": default_id,
        "is_default_form": bool(pokemon_data.get("is_default")),
        "name": pick_localized(species_data.get("names"), "name", ctx.language)
        or pokemon_data.get("name"),
        "sprite": local_sprite,
        "types": types,
        "stats": [
            {"name": s["stat"]["name"], "base": s["base_stat"]}
            for s in pokemon_data.get("stats") or []
        ],
        "height": pokemon_data.get("height", 0) / 10,
        "weight": pokemon_data.get("weight", 0) / 10,
        "category": pick_localized(species_data.get("genera"), "genus", ctx.language) or "",
        "version_order": [
            v for v in version_order(species_data, ctx.language) if v in flavor_texts
        ],
        "flavor_texts": flavor_texts,
        "varieties": build_varieties(species_data, default_id),
    }

    ctx.types.update(types)
    return entry


def dex_list_item(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": entry["id"],
        "name": entry["name"],
        "sprite": entry["sprite"],
        "types": entry["types"],
    }
