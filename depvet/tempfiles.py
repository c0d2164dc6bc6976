"""Temporary file helpers."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO


def create_empty_temp_file() -> Path:
    """Create an empty file in the system temporary directory and return its path."""
    fd, name = tempfile.mkstemp(prefix="temp-", dir=tempfile.gettempdir())
    os.close(fd)
    return Path(name)


def copy_to_temp_file(src: BinaryIO, directory: str | os.PathLike[str] | None, prefix: str) -> Path:
    """Copy everything readable from ``src`` into a new temporary file.

    An empty or missing ``directory`` means the system temporary directory.
    The file is closed on return; its path is returned.
    """
    with tempfile.NamedTemporaryFile(
        "wb", dir=directory or None, prefix=prefix, delete=False
    ) as out:
        shutil.copyfileobj(src, out)
    return Path(out.name)