"""Fetch-once archive cache with mirroring unpack.

An archive is downloaded into the cache directory only when no file of that
name is already there; a present file is reused without any network access.
Unpacking always starts from an empty scratch directory, and the payload is
then mirrored into the destination, so the destination never keeps files
from an earlier, different archive.

Downloads land in ``<name>.part`` and are moved into place only once the
stream completes, so an interrupted fetch never leaves a truncated file
that a later run would take for a valid cache entry.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from collections.abc import Iterable
from pathlib import Path

import requests

from wheelforge.core.errors import (
    FetchError,
    MissingParameterError,
    UnsupportedArchiveError,
    WheelforgeError,
)
from wheelforge.core.hasher import matches_digest
from wheelforge.core.paths import remove_path, rm_mkdir
from wheelforge.models.archives import ArchiveSpec

logger = logging.getLogger(__name__)

# Final filename extension -> tarfile open mode (None means zip).
ARCHIVE_MODES: dict[str, str | None] = {
    "tar": "r:",
    "gz": "r:gz",
    "tgz": "r:gz",
    "bz2": "r:bz2",
    "xz": "r:xz",
    "zip": None,
}

_CHUNK = 1 << 16


def archive_mode(archive: Path) -> str | None:
    """Return the tarfile mode for *archive* (None for zip).

    Raises ``UnsupportedArchiveError`` for unknown extensions.
    """
    extension = archive.name.rsplit(".", 1)[-1].lower() if "." in archive.name else ""
    if extension not in ARCHIVE_MODES:
        raise UnsupportedArchiveError(
            f"Did not recognize extension {extension!r} of {archive.name}"
        )
    return ARCHIVE_MODES[extension]


def untar(archive: Path, into: Path) -> None:
    """Extract *archive* into the existing directory *into*, by extension."""
    mode = archive_mode(archive)
    if mode is None:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(into)
        return
    with tarfile.open(archive, mode) as tf:
        if hasattr(tarfile, "data_filter"):
            tf.extractall(into, filter="data")
        else:
            tf.extractall(into)


def _shelters(entry: Path, protected: set[Path]) -> bool:
    """Whether *entry* is, or contains, one of the protected paths."""
    return any(p == entry or entry in p.parents for p in protected)


def mirror_tree(
    source: Path, dest: Path, protect: Iterable[Path] = ()
) -> None:
    """Replace the contents of *dest* with exactly the contents of *source*.

    Entries of *dest* that are not in *source* are deleted; entries of
    *source* are moved into *dest*, replacing what was there. Paths in
    *protect* (and directories containing them) are never deleted; a
    payload directory colliding with such a directory is merged into it
    recursively instead.

    *source* is consumed: its entries are moved, not copied.
    """
    dest.mkdir(parents=True, exist_ok=True)
    protected = {Path(os.path.abspath(p)) for p in protect}
    dest_abs = Path(os.path.abspath(dest))
    incoming = {entry.name: entry for entry in source.iterdir()}

    for existing in sorted(dest_abs.iterdir()):
        if existing.name in incoming or _shelters(existing, protected):
            continue
        logger.debug("Removing stale %s", existing)
        remove_path(existing)

    for name, entry in sorted(incoming.items()):
        target = dest_abs / name
        if _shelters(target, protected):
            if target in protected or not (entry.is_dir() and target.is_dir()):
                logger.warning("Payload entry %s collides with %s; skipped", name, target)
                continue
            mirror_tree(entry, target, protected)
            continue
        if target.exists() or target.is_symlink():
            remove_path(target)
        shutil.move(os.fspath(entry), os.fspath(target))


class ArchiveCache:
    """Downloads archives once and unpacks them fresh on every call.

    Parameters
    ----------
    cache_dir:
        Directory holding downloaded archives. Owned by the cache; files in
        it are never removed by normal operation.
    scratch_dir:
        Directory recreated empty for every unpack and removed afterwards.
    timeout:
        Network timeout in seconds for each download.
    """

    def __init__(
        self,
        cache_dir: Path = Path("archives"),
        scratch_dir: Path = Path("arch_tmp"),
        *,
        timeout: int = 300,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.scratch_dir = Path(scratch_dir)
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def spec_for(
        self,
        url: str,
        archive_filename: str | None = None,
        sha256: str | None = None,
    ) -> ArchiveSpec:
        if not url:
            raise MissingParameterError("url not defined")
        return ArchiveSpec(
            url=url,
            archive_filename=archive_filename,
            cache_dir=self.cache_dir,
            sha256=sha256,
        )

    def fetch(self, spec: ArchiveSpec) -> Path:
        """Return the cached archive path, downloading only if absent.

        With ``spec.sha256`` set, a cached file that does not match is
        discarded and fetched again, and a fresh download that does not
        match raises ``FetchError``.
        """
        path = spec.cache_path
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.is_file():
            if spec.sha256 is None or matches_digest(path, spec.sha256):
                logger.info("Using cached %s", path)
                return path
            logger.warning("Cached %s fails checksum; fetching again", path)
            path.unlink()

        self._download(spec.url, path)

        if spec.sha256 is not None and not matches_digest(path, spec.sha256):
            path.unlink()
            logger.error("Checksum mismatch for %s", spec.url)
            raise FetchError(f"Checksum mismatch for {spec.url}")
        return path

    def _download(self, url: str, path: Path) -> None:
        partial = path.with_name(path.name + ".part")
        logger.info("Fetching %s -> %s", url, path)
        try:
            with requests.get(
                url, stream=True, timeout=self._timeout, allow_redirects=True
            ) as response:
                response.raise_for_status()
                with partial.open("wb") as fh:
                    for chunk in response.iter_content(chunk_size=_CHUNK):
                        if chunk:
                            fh.write(chunk)
        except (requests.RequestException, OSError) as exc:
            partial.unlink(missing_ok=True)
            logger.error("Download of %s failed: %s", url, exc)
            raise FetchError(f"Could not fetch {url}: {exc}") from exc
        os.replace(partial, path)

    # ------------------------------------------------------------------
    # Unpack
    # ------------------------------------------------------------------

    def unpack(
        self, archive: Path, dest_dir: Path, *, protect: Iterable[Path] = ()
    ) -> None:
        """Unpack *archive* into a fresh scratch dir and mirror into *dest_dir*.

        The cache and scratch directories, plus any path in *protect*, survive
        the mirror when they live inside *dest_dir*.
        """
        archive_mode(archive)  # reject unknown extensions before touching disk
        kept_paths = (self.cache_dir, *protect)
        dest_abs = Path(os.path.abspath(dest_dir))
        if any(Path(os.path.abspath(kept)) == dest_abs for kept in kept_paths):
            raise WheelforgeError(
                f"Refusing to mirror into protected directory {dest_dir}"
            )
        scratch = rm_mkdir(self.scratch_dir)
        try:
            untar(Path(os.path.abspath(archive)), scratch)
            mirror_tree(scratch, Path(dest_dir), protect=(*kept_paths, scratch))
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
        logger.info("Unpacked %s into %s", archive.name, dest_dir)

    def fetch_unpack(
        self,
        url: str,
        archive_filename: str | None = None,
        dest_dir: Path = Path("."),
        *,
        sha256: str | None = None,
        protect: Iterable[Path] = (),
    ) -> Path:
        """Fetch *url* (once) and unpack it into *dest_dir*.

        *dest_dir* is mirrored: entries not in the archive are deleted unless
        listed in *protect*. Returns the path of the cached archive.
        """
        spec = self.spec_for(url, archive_filename, sha256)
        archive_mode(spec.cache_path)
        archive = self.fetch(spec)
        self.unpack(archive, Path(dest_dir), protect=protect)
        return archive
