"""File-based cache helpers.

Provides:
- best-effort directory creation
- atomic JSON and raw-bytes writes
- tolerant JSON reads
"""

import json
import logging
import os
import tempfile
from typing import Any, Optional

logger = logging.getLogger(__name__)


def ensure_dir(path: str) -> bool:
    """Create a directory (and parents) if missing.

    Failures are logged rather than raised; returns ``False`` when the
    directory could not be created.
    """
    if not path:
        return True
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as exc:
        logger.error("Could not create directory %s: %s", path, exc)
        return False
    return True


def read_json(path: str) -> Optional[Any]:
    """Read JSON from disk; return None if missing or invalid."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None


def _atomic_write(path: str, mode: str, write) -> None:
    directory = os.path.dirname(path) or "."
    ensure_dir(directory)
    fd, tmp_path = tempfile.mkstemp(
        prefix=os.path.basename(path) + ".",
        suffix=".tmp",
        dir=directory,
    )
    try:
        encoding = "utf-8" if "b" not in mode else None
        with os.fdopen(fd, mode, encoding=encoding) as f:
            write(f)
        os.replace(tmp_path, path)
    finally:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass


def atomic_write_json(path: str, obj: Any) -> None:
    """Atomically write pretty-printed JSON by writing a temp file then renaming."""
    _atomic_write(path, "w", lambda f: json.dump(obj, f, ensure_ascii=False, indent=2))


def atomic_write_bytes(path: str, data: bytes) -> None:
    """Atomically write raw bytes by writing a temp file then renaming."""
    _atomic_write(path, "wb", lambda f: f.write(data))
