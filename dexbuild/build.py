"""Build CLI and aggregate assembly for the Pokédex data file.

Walks the national dex in order, builds one entry per species plus one per
non-default variety, downloads the type icons and writes
``data/pokemon.json``.
"""

from __future__ import annotations

import argparse
import gzip
import json
import logging
import os
import sys
from collections import deque
from concurrent import futures
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple

import requests

from .cache.io import atomic_write_bytes, atomic_write_json, read_json
from .fetch import (
    DEFAULT_TIMEOUT_SECONDS,
    ContentKind,
    FetchError,
    ResourceRequest,
    fetch_cached,
    pokemon_index_url,
    type_icon_url,
)
from .transform import EntryId, build_entry, dex_list_item, sprite_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.json"
NATIONAL_DEX_LAST = 1025  # Pecharunt, Gen 9
SPRITE_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/{id}.png"
)
TYPE_ICON_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/partywhale/pokemon-type-icons/main/icons/{type}.svg"
)

# (entry id, explicit record url, id of the species the entry belongs to, is variety)
WorkItem = Tuple[EntryId, Optional[str], int, bool]


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = "dexbuild/1.0 (static pokedex data)"
    return session


@dataclass
class BuildContext:
    """Settings and shared state threaded through one build run."""

    data_dir: str = "./data"
    base_url: str = "https://pokeapi.co/api/v2"
    national_dex_last: int = NATIONAL_DEX_LAST
    limit: Optional[int] = None
    sprite_url_template: str = SPRITE_URL_TEMPLATE
    type_icon_url_template: str = TYPE_ICON_URL_TEMPLATE
    language: str = "en"
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    icon_workers: int = 8
    gzip_output: bool = False
    session: Any = None
    # Creates the per-request sessions used by the parallel icon phase
    session_factory: Callable[[], Any] = _build_session
    types: Set[str] = field(default_factory=set)

    @property
    def index_path(self) -> str:
        return os.path.join(self.data_dir, "pokedex.json")

    @property
    def output_path(self) -> str:
        return os.path.join(self.data_dir, "pokemon.json")


def load_config(config_path: str) -> Dict:
    """Load JSON configuration from ``config_path``.

    Raises ``RuntimeError`` if the file is missing or invalid.
    """
    data = read_json(config_path)
    if not data:
        raise RuntimeError(f"Missing or invalid config: {config_path}")
    return data


def context_from_config(
    cfg: Dict, limit: Optional[int] = None, session: Optional[Any] = None
) -> BuildContext:
    """Create a ``BuildContext`` from a loaded config dict."""
    return BuildContext(
        data_dir=cfg.get("data_dir", "./data"),
        base_url=cfg.get("pokeapi_base_url", "https://pokeapi.co/api/v2"),
        national_dex_last=int(cfg.get("national_dex_last", NATIONAL_DEX_LAST)),
        limit=limit,
        sprite_url_template=cfg.get("sprite_url_template", SPRITE_URL_TEMPLATE),
        type_icon_url_template=cfg.get("type_icon_url_template", TYPE_ICON_URL_TEMPLATE),
        language=cfg.get("language", "en"),
        timeout=float(cfg.get("request_timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
        icon_workers=int(cfg.get("icon_workers", 8)),
        gzip_output=bool(cfg.get("gzip_output", False)),
        session=session if session is not None else _build_session(),
        session_factory=_build_session,
    )


def fetch_index(ctx: BuildContext) -> List[Dict[str, Any]]:
    """Fetch (or reuse) the species index and return its results."""
    index = fetch_cached(
        ResourceRequest(pokemon_index_url(ctx.base_url, ctx.national_dex_last), ctx.index_path),
        session=ctx.session,
        timeout=ctx.timeout,
    )
    results = index.get("results") or []
    discovered = len(results)
    if ctx.limit is not None:
        results = results[: ctx.limit]
    logger.info("Discovered %d species; processing %d", discovered, len(results))
    return results


def build_entries(ctx: BuildContext, species_count: int) -> Tuple[Dict[EntryId, Dict], List[int]]:
    """Build every species 1..``species_count`` and its non-default varieties.

    Returns the entries keyed by id/variety name and the default ids in
    ascending order. Varieties are built right after their species.
    """
    entries: Dict[EntryId, Dict] = {}
    default_ids: List[int] = []
    work: Deque[WorkItem] = deque(
        (i, None, i, False) for i in range(1, species_count + 1)
    )

    while work:
        entry_id, entry_url, default_id, is_variety = work.popleft()
        entry = build_entry(ctx, entry_id, entry_url, default_id)
        entries[entry_id] = entry

        if is_variety:
            continue
        default_ids.append(default_id)
        varieties = []
        for v in entry["varieties"]:
            if v["is_default"]:
                continue
            if not v["name"] or not v["url"]:
                logger.warning("Skipping variety %r of #%s: no name or url", v["name"], default_id)
                continue
            varieties.append(v)
        work.extendleft((v["name"], v["url"], default_id, True) for v in reversed(varieties))
        logger.info(
            "Built #%s %s (%d extra variet%s)",
            default_id,
            entry["name"],
            len(varieties),
            "y" if len(varieties) == 1 else "ies",
        )

    return entries, default_ids


def download_type_icons(ctx: BuildContext) -> int:
    """Download every collected type icon in parallel; returns how many are missing."""
    type_names = sorted(ctx.types)

    def _fetch_icon(type_name: str) -> Optional[str]:
        path = sprite_path(ctx.data_dir, type_name, ext="svg")
        request = ResourceRequest(
            type_icon_url(ctx.type_icon_url_template, type_name),
            path,
            kind=ContentKind.BINARY,
            allow_failure=True,
        )
        try:
            with ctx.session_factory() as session:
                fetch_cached(request, session=session, timeout=ctx.timeout)
        except OSError as exc:
            logger.warning("Could not store type icon %s: %s", type_name, exc)
            return type_name
        return None if os.path.exists(path) else type_name

    missing = []
    with futures.ThreadPoolExecutor(max_workers=max(1, ctx.icon_workers)) as executor:
        jobs = [executor.submit(_fetch_icon, t) for t in type_names]
        for job in futures.as_completed(jobs):
            failed = job.result()
            if failed is not None:
                missing.append(failed)

    if missing:
        logger.warning("Missing type icons: %s", ", ".join(sorted(missing)))
    return len(missing)


def write_aggregate(ctx: BuildContext, document: Dict[str, Any]) -> str:
    """Persist the aggregate document (and an optional gzip copy)."""
    atomic_write_json(ctx.output_path, document)
    if ctx.gzip_output:
        raw = json.dumps(document, ensure_ascii=False, indent=2).encode("utf-8")
        atomic_write_bytes(ctx.output_path + ".gz", gzip.compress(raw, compresslevel=9))
    logger.info("Wrote %s", ctx.output_path)
    return ctx.output_path


def run_build(ctx: BuildContext) -> Dict[str, Any]:
    """Run a full build and return the aggregate document.

    Raises ``FetchError`` when a required resource cannot be downloaded; no
    aggregate file is written in that case.
    """
    results = fetch_index(ctx)

    entries, default_ids = build_entries(ctx, len(results))
    document = {
        "entries": entries,
        "dexList": [dex_list_item(entries[i]) for i in default_ids],
    }

    download_type_icons(ctx)
    write_aggregate(ctx, document)
    return document


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(prog="dexbuild")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--limit", type=int, default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point: regenerate all static data."""
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] - %(message)s",
        level=logging.INFO,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    cfg = load_config(args.config)
    with _build_session() as session:
        ctx = context_from_config(cfg, limit=args.limit, session=session)
        try:
            document = run_build(ctx)
        except FetchError as exc:
            logger.error("Build aborted: %s", exc)
            return 1

    print(
        "Summary: "
        + ", ".join(
            [
                f"entries={len(document['entries'])}",
                f"species={len(document['dexList'])}",
                f"types={len(ctx.types)}",
                f"output={ctx.output_path}",
            ]
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
