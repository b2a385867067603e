"""Fetch layer and disk cache for Pokédex data.

Downloads PokéAPI records, sprites and type icons, memoizing each resource
as a file under the data directory. A cached file is reused as-is on later
runs; there is no expiry.
"""

from __future__ import annotations

import enum
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

import requests
import pokebase.common as pokebase_common

from .cache.io import atomic_write_bytes, atomic_write_json, ensure_dir, read_json

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class FetchError(RuntimeError):
    """A required resource could not be obtained from any candidate URL."""


class ContentKind(enum.Enum):
    JSON = "json"
    BINARY = "binary"


@dataclass(frozen=True)
class ResourceRequest:
    """A remote resource with ordered fallback URLs and an optional cache path.

    ``candidates`` are tried in order until one succeeds. ``path`` is where
    the content is cached; JSON content is re-serialized pretty-printed,
    binary content is stored as downloaded.
    """

    candidates: Union[str, Sequence[str]]
    path: Optional[str] = None
    kind: ContentKind = ContentKind.JSON
    allow_failure: bool = False

    def __post_init__(self) -> None:
        # A single URL is shorthand for a one-element fallback chain.
        if isinstance(self.candidates, str):
            object.__setattr__(self, "candidates", (self.candidates,))
        else:
            object.__setattr__(self, "candidates", tuple(self.candidates))

        if not self.path and self.kind is not ContentKind.JSON:
            raise ValueError(
                "Request has neither a cache path nor JSON content; nothing would use the download"
            )
        if not self.candidates:
            raise ValueError("Request needs at least one candidate URL")


def _configure_pokebase_base_url(base_url: str) -> None:
    """Configure pokebase to use the configured PokéAPI base URL."""
    pokebase_common.BASE_URL = base_url.rstrip("/")


def pokemon_url(base_url: str, pokemon_id: int) -> str:
    """Detail URL of a Pokémon form record, e.g. ``.../pokemon/25/``."""
    _configure_pokebase_base_url(base_url)
    return pokebase_common.api_url_build("pokemon", pokemon_id)


def pokemon_index_url(base_url: str, limit: int) -> str:
    """Listing URL returning the first ``limit`` Pokémon."""
    _configure_pokebase_base_url(base_url)
    return f"{pokebase_common.api_url_build('pokemon')}?limit={limit}"


def sprite_url(template: str, entry_id: Union[int, str]) -> str:
    return template.format(id=entry_id)


def type_icon_url(template: str, type_name: str) -> str:
    return template.format(type=type_name)


def _read_cached(request: ResourceRequest) -> Tuple[bool, Any]:
    """Return ``(hit, value)`` for the request's cache path."""
    if not request.path or not os.path.exists(request.path):
        return False, None
    if request.kind is ContentKind.BINARY:
        return True, None

    data = read_json(request.path)
    if data is None:
        logger.warning("Corrupt JSON cache at %s; re-fetching", request.path)
        return False, None
    return True, data


def _download(session: Any, url: str, request: ResourceRequest, timeout: float) -> Tuple[bool, Any]:
    """Try a single candidate URL; return ``(ok, value)``."""
    logger.info("Downloading missing data for %s from %s", request.path, url)
    try:
        resp = session.get(url, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        logger.warning("Failed to download %s: %s", url, exc)
        return False, None

    logger.info("%s status: %s", url, resp.status_code)
    if not resp.ok:
        logger.warning("Failed to download %s because: %s", url, resp.text)
        return False, None

    if request.kind is ContentKind.BINARY:
        if request.path:
            atomic_write_bytes(request.path, resp.content)
        return True, None

    try:
        payload = json.loads(resp.content)
    except ValueError as exc:
        logger.warning("Invalid JSON from %s: %s", url, exc)
        return False, None

    if request.path:
        atomic_write_json(request.path, payload)
    return True, payload


def fetch_cached(
    request: ResourceRequest,
    session: Optional[Any] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Return the resource from cache, downloading it on a miss.

    Returns parsed JSON for ``ContentKind.JSON`` requests and ``None`` for
    binary ones. Raises ``FetchError`` when every candidate fails, unless the
    request allows failure, in which case ``None`` is returned.
    """
    hit, value = _read_cached(request)
    if hit:
        return value

    if request.path:
        ensure_dir(os.path.dirname(request.path))

    http = session if session is not None else requests
    for url in request.candidates:
        ok, value = _download(http, url, request, timeout)
        if ok:
            return value

    if not request.allow_failure:
        raise FetchError(
            f"Error downloading content for {request.path or request.candidates[0]}"
        )
    logger.warning(
        "Giving up on %s after %d candidate(s)", request.path, len(request.candidates)
    )
    return None
