"""Archive fetch request model."""

from __future__ import annotations

import posixpath
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict


class ArchiveSpec(BaseModel):
    """One fetch request: where to download from and where to cache it.

    The cached file persists across invocations and is never re-downloaded
    while present.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    archive_filename: str | None = None
    cache_dir: Path = Path("archives")
    sha256: str | None = None

    @property
    def archive_name(self) -> str:
        """The explicit archive filename, or the basename of the URL path."""
        if self.archive_filename:
            return self.archive_filename
        return posixpath.basename(urlsplit(self.url).path.rstrip("/"))

    @property
    def cache_path(self) -> Path:
        """Location of the cached archive on disk."""
        return self.cache_dir / self.archive_name
