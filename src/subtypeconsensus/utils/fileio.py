"""
Atomic file-write utilities.

Output files are written to a temporary file in the destination directory
and moved into place with ``os.replace()``, so an interrupted run never
leaves a half-written report behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Callable, IO


def _atomic_write(path: str | os.PathLike, write: Callable[[IO[str]], None]) -> None:
    path = str(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False, newline=""
        ) as tmp:
            tmp_path = tmp.name
            write(tmp)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename."""
    _atomic_write(path, lambda f: json.dump(data, f, indent=indent))


def atomic_write_text(path: str | os.PathLike, content: str) -> None:
    """Write *content* as text atomically via temp-file + rename."""
    _atomic_write(path, lambda f: f.write(content))
