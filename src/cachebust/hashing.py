"""Streaming content fingerprints used to name build outputs."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Self


class ContentHasher:
    """Order-sensitive digest accumulator over raw bytes."""

    __slots__ = ("_hash",)

    def __init__(self) -> None:
        self._hash = hashlib.md5(usedforsecurity=False)

    @classmethod
    def create(cls) -> Self:
        return cls()

    def update(self, content: bytes) -> Self:
        self._hash.update(content)
        return self

    def digest(self) -> str:
        return self._hash.hexdigest()


def content_digest(*chunks: bytes) -> str:
    hasher = ContentHasher.create()
    for chunk in chunks:
        hasher.update(chunk)
    return hasher.digest()


def hashed_filename(name: str, digest: str) -> str:
    """Splice ``digest`` in front of the extension: ``app.js`` -> ``app.<digest>.js``."""
    path = Path(name)
    if not path.suffix:
        return f"{name}.{digest}"
    return str(path.with_name(f"{path.stem}.{digest}{path.suffix}"))


def hashed_dirname(name: str, digest: str) -> str:
    return f"{name}.{digest}"
