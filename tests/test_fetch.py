import json
import os

import pytest

from fakes import BASE_URL, FakeSession
from dexbuild.fetch import (
    ContentKind,
    FetchError,
    ResourceRequest,
    fetch_cached,
    pokemon_index_url,
    pokemon_url,
    sprite_url,
    type_icon_url,
)


def test_request_without_path_or_json_is_rejected():
    session = FakeSession()
    with pytest.raises(ValueError):
        ResourceRequest("https://x.test/a.png", None, kind=ContentKind.BINARY)
    assert session.calls == []


def test_request_without_candidates_is_rejected():
    with pytest.raises(ValueError):
        ResourceRequest([], "out.json")


def test_single_url_is_wrapped():
    req = ResourceRequest("https://x.test/a.json")
    assert req.candidates == ("https://x.test/a.json",)


def test_json_is_cached_and_reused(tmp_path):
    path = str(tmp_path / "pokemon" / "1.json")
    session = FakeSession({"https://x.test/1": {"name": "bulbasaur", "id": 1}})
    req = ResourceRequest("https://x.test/1", path)

    first = fetch_cached(req, session=session)
    assert first == {"name": "bulbasaur", "id": 1}
    assert session.calls == ["https://x.test/1"]

    # Stored pretty-printed
    with open(path, encoding="utf-8") as f:
        raw = f.read()
    assert raw == json.dumps(first, indent=2)

    second = fetch_cached(req, session=session)
    third = fetch_cached(req, session=session)
    assert second == first == third
    assert session.calls == ["https://x.test/1"]


def test_existing_file_skips_network_entirely(tmp_path):
    path = tmp_path / "pokedex.json"
    path.write_text(json.dumps({"results": [1, 2]}), encoding="utf-8")
    session = FakeSession()

    req = ResourceRequest("https://x.test/index", str(path))
    assert fetch_cached(req, session=session) == {"results": [1, 2]}
    assert fetch_cached(req, session=session) == {"results": [1, 2]}
    assert session.calls == []


def test_existing_binary_returns_nothing(tmp_path):
    path = tmp_path / "1.png"
    path.write_bytes(b"\x89PNG")
    session = FakeSession()

    req = ResourceRequest("https://x.test/1.png", str(path), kind=ContentKind.BINARY)
    assert fetch_cached(req, session=session) is None
    assert session.calls == []


def test_fallback_stops_at_first_success(tmp_path):
    path = str(tmp_path / "sprites" / "1.png")
    session = FakeSession()
    session.fail("https://x.test/a.png")
    session.fail("https://x.test/b.png", status=500)
    session.add("https://x.test/c.png", b"third")
    session.add("https://x.test/d.png", b"fourth")

    req = ResourceRequest(
        ["https://x.test/a.png", "https://x.test/b.png", "https://x.test/c.png", "https://x.test/d.png"],
        path,
        kind=ContentKind.BINARY,
    )
    assert fetch_cached(req, session=session) is None
    assert session.calls == ["https://x.test/a.png", "https://x.test/b.png", "https://x.test/c.png"]
    with open(path, "rb") as f:
        assert f.read() == b"third"


def test_json_fallback_returns_successful_payload(tmp_path):
    session = FakeSession()
    session.fail("https://x.test/first")
    session.add("https://x.test/second", {"ok": True})

    req = ResourceRequest(["https://x.test/first", "https://x.test/second"], str(tmp_path / "r.json"))
    assert fetch_cached(req, session=session) == {"ok": True}


def test_transport_error_moves_to_next_candidate(tmp_path):
    session = FakeSession()
    session.routes["https://down.test/a"] = (-1, b"")
    session.add("https://x.test/b", {"ok": 1})

    req = ResourceRequest(["https://down.test/a", "https://x.test/b"], str(tmp_path / "r.json"))
    assert fetch_cached(req, session=session) == {"ok": 1}


def test_exhaustion_raises_when_required(tmp_path):
    path = tmp_path / "pokemon" / "1.json"
    session = FakeSession()

    req = ResourceRequest(["https://x.test/a", "https://x.test/b"], str(path))
    with pytest.raises(FetchError):
        fetch_cached(req, session=session)
    assert session.calls == ["https://x.test/a", "https://x.test/b"]
    assert not path.exists()


def test_exhaustion_tolerated_when_allowed(tmp_path):
    path = tmp_path / "sprites" / "1.png"
    session = FakeSession()

    req = ResourceRequest(
        ["https://x.test/a.png"], str(path), kind=ContentKind.BINARY, allow_failure=True
    )
    assert fetch_cached(req, session=session) is None
    assert not path.exists()
    # Directory is still prepared for later runs
    assert os.path.isdir(tmp_path / "sprites")


def test_corrupt_cache_is_refetched(tmp_path):
    path = tmp_path / "1.json"
    path.write_text("{not json", encoding="utf-8")
    session = FakeSession({"https://x.test/1": {"id": 1}})

    assert fetch_cached(ResourceRequest("https://x.test/1", str(path)), session=session) == {"id": 1}
    assert json.loads(path.read_text(encoding="utf-8")) == {"id": 1}


def test_invalid_json_body_counts_as_failure(tmp_path):
    session = FakeSession()
    session.add("https://x.test/html", "<html>oops</html>")
    session.add("https://x.test/json", {"id": 2})

    req = ResourceRequest(["https://x.test/html", "https://x.test/json"], str(tmp_path / "2.json"))
    assert fetch_cached(req, session=session) == {"id": 2}


def test_json_without_path_is_not_persisted(tmp_path):
    session = FakeSession({"https://x.test/1": {"id": 1}})
    assert fetch_cached(ResourceRequest("https://x.test/1"), session=session) == {"id": 1}
    assert list(tmp_path.iterdir()) == []


def test_url_builders():
    assert pokemon_url(BASE_URL, 25) == f"{BASE_URL}/pokemon/25/"
    assert pokemon_index_url(BASE_URL + "/", 1025) == f"{BASE_URL}/pokemon/?limit=1025"
    assert sprite_url("https://s.test/{id}.png", "foo-mega") == "https://s.test/foo-mega.png"
    assert type_icon_url("https://i.test/{type}.svg", "fire") == "https://i.test/fire.svg"
