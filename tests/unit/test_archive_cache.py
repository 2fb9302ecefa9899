"""Tests for ArchiveCache — fetch-once, mirroring unpack, failure hygiene."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest
import requests

from wheelforge.core.archive_cache import ArchiveCache, archive_mode, mirror_tree
from wheelforge.core.errors import (
    FetchError,
    MissingParameterError,
    UnsupportedArchiveError,
    WheelforgeError,
)
from wheelforge.core.hasher import sha256_hex
from wheelforge.models.archives import ArchiveSpec

URL = "https://example.org/downloads/lib-1.0.tar.gz"


@pytest.fixture
def cache(tmp_path: Path) -> ArchiveCache:
    return ArchiveCache(tmp_path / "archives", tmp_path / "arch_tmp")


@pytest.fixture
def payload(tmp_path: Path, tar_gz_factory) -> bytes:
    archive = tar_gz_factory(
        tmp_path / "src" / "lib-1.0.tar.gz",
        {"lib-1.0/README": b"hello\n", "lib-1.0/src/lib.c": b"int x;\n"},
    )
    return archive.read_bytes()


class TestArchiveSpec:
    def test_name_defaults_to_url_basename(self):
        spec = ArchiveSpec(url="https://example.org/a/b/pkg.tar.bz2?dl=1")
        assert spec.archive_name == "pkg.tar.bz2"
        assert spec.cache_path == Path("archives") / "pkg.tar.bz2"

    def test_explicit_name_wins(self):
        spec = ArchiveSpec(url=URL, archive_filename="renamed.tgz", cache_dir=Path("c"))
        assert spec.cache_path == Path("c/renamed.tgz")


class TestArchiveMode:
    @pytest.mark.parametrize(
        "name, mode",
        [
            ("a.tar", "r:"),
            ("a.tar.gz", "r:gz"),
            ("a.tgz", "r:gz"),
            ("a.tar.bz2", "r:bz2"),
            ("a.tar.xz", "r:xz"),
            ("a.zip", None),
        ],
    )
    def test_known_extensions(self, name: str, mode: str | None):
        assert archive_mode(Path(name)) == mode

    def test_unknown_extension(self):
        with pytest.raises(UnsupportedArchiveError):
            archive_mode(Path("a.rar"))


class TestFetchUnpack:
    def test_second_call_does_not_refetch(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        fake_downloads.payloads[URL] = payload
        dest = tmp_path / "dest"

        first = cache.fetch_unpack(URL, dest_dir=dest)
        second = cache.fetch_unpack(URL, dest_dir=dest)

        assert first == second == tmp_path / "archives" / "lib-1.0.tar.gz"
        assert fake_downloads.requested == [URL]
        assert (dest / "lib-1.0" / "README").read_bytes() == b"hello\n"
        assert sorted(p.name for p in dest.iterdir()) == ["lib-1.0"]

    def test_scratch_removed_after_unpack(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        fake_downloads.payloads[URL] = payload
        cache.fetch_unpack(URL, dest_dir=tmp_path / "dest")
        assert not (tmp_path / "arch_tmp").exists()

    def test_cached_file_used_without_network(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        cached = tmp_path / "archives" / "pinned.tar.gz"
        cached.parent.mkdir()
        cached.write_bytes(payload)

        cache.fetch_unpack(URL, "pinned.tar.gz", tmp_path / "dest")

        assert fake_downloads.requested == []
        assert (tmp_path / "dest" / "lib-1.0" / "src" / "lib.c").exists()

    def test_dest_reflects_only_latest_payload(
        self, cache: ArchiveCache, fake_downloads, tar_gz_factory, tmp_path: Path
    ):
        old = tar_gz_factory(tmp_path / "v1.tar.gz", {"pkg/old.txt": b"1", "stale.txt": b"x"})
        new = tar_gz_factory(tmp_path / "v2.tar.gz", {"pkg/new.txt": b"2"})
        fake_downloads.payloads["https://h/v1.tar.gz"] = old.read_bytes()
        fake_downloads.payloads["https://h/v2.tar.gz"] = new.read_bytes()
        dest = tmp_path / "dest"

        cache.fetch_unpack("https://h/v1.tar.gz", dest_dir=dest)
        cache.fetch_unpack("https://h/v2.tar.gz", dest_dir=dest)

        assert sorted(p.name for p in dest.iterdir()) == ["pkg"]
        assert sorted(p.name for p in (dest / "pkg").iterdir()) == ["new.txt"]

    def test_mirror_into_cwd_keeps_only_cache(
        self, fake_downloads, payload: bytes, tmp_path: Path, monkeypatch
    ):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "unrelated.txt").write_text("gone after mirror")
        fake_downloads.payloads[URL] = payload
        cache = ArchiveCache(Path("archives"), Path("arch_tmp"))

        cache.fetch_unpack(URL, dest_dir=Path("."))

        assert (tmp_path / "archives" / "lib-1.0.tar.gz").is_file()
        assert (tmp_path / "lib-1.0" / "README").is_file()
        assert not (tmp_path / "unrelated.txt").exists()
        assert not (tmp_path / "arch_tmp").exists()

    def test_protected_paths_survive_mirror(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        dest = tmp_path / "dest"
        (dest / "wheelhouse").mkdir(parents=True)
        (dest / "wheelhouse" / "demo-1.0-py3-none-any.whl").write_bytes(b"w")
        (dest / ".git").mkdir()
        (dest / "setup.py").write_text("")
        fake_downloads.payloads[URL] = payload

        cache.fetch_unpack(URL, dest_dir=dest, protect=[dest / "wheelhouse", dest / ".git"])

        assert sorted(p.name for p in dest.iterdir()) == [".git", "lib-1.0", "wheelhouse"]
        assert (dest / "wheelhouse" / "demo-1.0-py3-none-any.whl").is_file()

    def test_protected_dest_refused(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        dest = tmp_path / "wheelhouse"
        dest.mkdir()
        (dest / "demo-1.0-py3-none-any.whl").write_bytes(b"w")
        fake_downloads.payloads[URL] = payload

        with pytest.raises(WheelforgeError, match="protected"):
            cache.fetch_unpack(URL, dest_dir=dest, protect=[dest])

        assert (dest / "demo-1.0-py3-none-any.whl").is_file()

    def test_zip_archive(self, cache: ArchiveCache, fake_downloads, tmp_path: Path):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("tool/run.sh", "echo hi\n")
        fake_downloads.payloads["https://h/tool.zip"] = buffer.getvalue()

        cache.fetch_unpack("https://h/tool.zip", dest_dir=tmp_path / "dest")

        assert (tmp_path / "dest" / "tool" / "run.sh").read_text() == "echo hi\n"

    def test_unsupported_extension_fails_before_download(
        self, cache: ArchiveCache, fake_downloads, tmp_path: Path
    ):
        with pytest.raises(UnsupportedArchiveError):
            cache.fetch_unpack("https://h/pkg.rar", dest_dir=tmp_path / "dest")
        assert fake_downloads.requested == []

    def test_missing_url(self, cache: ArchiveCache):
        with pytest.raises(MissingParameterError):
            cache.fetch_unpack("")


class TestFetchFailures:
    def test_http_error_leaves_no_cache_entry(
        self, cache: ArchiveCache, fake_downloads, tmp_path: Path
    ):
        fake_downloads.respond(
            URL, b"", status_error=requests.HTTPError("404 Not Found")
        )
        with pytest.raises(FetchError):
            cache.fetch_unpack(URL, dest_dir=tmp_path / "dest")
        assert list((tmp_path / "archives").iterdir()) == []

    def test_interrupted_stream_leaves_no_partial_file(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        fake_downloads.respond(
            URL, payload, fail_after_first_chunk=requests.ConnectionError("reset")
        )
        with pytest.raises(FetchError):
            cache.fetch_unpack(URL, dest_dir=tmp_path / "dest")
        assert list((tmp_path / "archives").iterdir()) == []

        # A later run fetches for real instead of trusting a truncated file.
        del fake_downloads.responses[URL]
        fake_downloads.payloads[URL] = payload
        cache.fetch_unpack(URL, dest_dir=tmp_path / "dest")
        assert fake_downloads.requested == [URL, URL]


class TestChecksums:
    def test_matching_checksum_accepted(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        fake_downloads.payloads[URL] = payload
        cache.fetch_unpack(URL, dest_dir=tmp_path / "dest", sha256=sha256_hex(payload))
        assert (tmp_path / "archives" / "lib-1.0.tar.gz").is_file()

    def test_mismatched_download_removed(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        fake_downloads.payloads[URL] = payload
        with pytest.raises(FetchError, match="Checksum"):
            cache.fetch_unpack(URL, dest_dir=tmp_path / "dest", sha256="0" * 64)
        assert not (tmp_path / "archives" / "lib-1.0.tar.gz").exists()

    def test_corrupt_cached_file_refetched(
        self, cache: ArchiveCache, fake_downloads, payload: bytes, tmp_path: Path
    ):
        cached = tmp_path / "archives" / "lib-1.0.tar.gz"
        cached.parent.mkdir()
        cached.write_bytes(payload[:10])
        fake_downloads.payloads[URL] = payload

        cache.fetch_unpack(URL, dest_dir=tmp_path / "dest", sha256=f"sha256:{sha256_hex(payload)}")

        assert fake_downloads.requested == [URL]
        assert cached.read_bytes() == payload


class TestMirrorTree:
    def test_replaces_file_with_directory(self, tmp_path: Path):
        source = tmp_path / "src"
        (source / "thing").mkdir(parents=True)
        (source / "thing" / "inner.txt").write_text("new")
        dest = tmp_path / "dest"
        dest.mkdir()
        (dest / "thing").write_text("old file")

        mirror_tree(source, dest)

        assert (dest / "thing" / "inner.txt").read_text() == "new"

    def test_protected_path_survives(self, tmp_path: Path):
        source = tmp_path / "src"
        source.mkdir()
        (source / "a.txt").write_text("a")
        dest = tmp_path / "dest"
        (dest / "keep" / "cache").mkdir(parents=True)
        (dest / "drop.txt").write_text("x")

        mirror_tree(source, dest, protect=[dest / "keep" / "cache"])

        assert (dest / "keep" / "cache").is_dir()
        assert not (dest / "drop.txt").exists()
        assert (dest / "a.txt").read_text() == "a"
