"""SHA-256 helpers for archive integrity checks."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK = 1 << 16


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def matches_digest(path: Path, expected: str) -> bool:
    """Whether *path* hashes to *expected* (``sha256:`` prefix allowed)."""
    return sha256_file(path) == expected.removeprefix("sha256:").lower()
