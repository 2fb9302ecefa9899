"""Shared test fixtures for Wheelforge."""

from __future__ import annotations

import io
import os
import subprocess
import tarfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from wheelforge.config import BuildSettings
from wheelforge.core.errors import SubprocessError
from wheelforge.core.runner import CommandRunner

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Wheelforge Tests",
    "GIT_AUTHOR_EMAIL": "tests@wheelforge.invalid",
    "GIT_COMMITTER_NAME": "Wheelforge Tests",
    "GIT_COMMITTER_EMAIL": "tests@wheelforge.invalid",
    "GIT_CONFIG_NOSYSTEM": "1",
    # Local-path submodules are refused by default since git 2.38.1.
    "GIT_CONFIG_COUNT": "2",
    "GIT_CONFIG_KEY_0": "protocol.file.allow",
    "GIT_CONFIG_VALUE_0": "always",
    "GIT_CONFIG_KEY_1": "init.defaultBranch",
    "GIT_CONFIG_VALUE_1": "main",
}


# ---------------------------------------------------------------------------
# Recording runner
# ---------------------------------------------------------------------------


class RecordingRunner(CommandRunner):
    """CommandRunner double that records commands instead of running them.

    ``effects`` maps a predicate over argv to a side effect callable that
    receives ``(argv, cwd)``; the first matching effect runs. A predicate
    listed in ``failures`` makes that command raise ``SubprocessError``.
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[list[str], Path | None]] = []
        self.effects: list[tuple[Callable[[list[str]], bool], Callable[..., Any]]] = []
        self.failures: list[Callable[[list[str]], bool]] = []

    def run(self, args: Sequence[Any], *, cwd=None, error_cls=SubprocessError) -> str:
        argv = [os.fspath(a) for a in args]
        workdir = Path(cwd) if cwd is not None else None
        self.calls.append((argv, workdir))
        if any(match(argv) for match in self.failures):
            raise error_cls(argv, 1, cwd=workdir)
        for match, effect in self.effects:
            if match(argv):
                effect(argv, workdir)
                break
        return ""

    def output(self, args: Sequence[Any], *, cwd=None, error_cls=SubprocessError) -> str:
        return self.run(args, cwd=cwd, error_cls=error_cls)

    @property
    def commands(self) -> list[list[str]]:
        return [argv for argv, _ in self.calls]


@pytest.fixture
def recording_runner() -> RecordingRunner:
    """Provide a runner that records commands without executing them."""
    return RecordingRunner()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def build_settings(tmp_path: Path) -> BuildSettings:
    """Provide BuildSettings rooted in a temp directory, repair disabled."""
    return BuildSettings(
        archive_sdir=tmp_path / "archives",
        wheel_sdir=tmp_path / "wheelhouse",
        scratch_dir=tmp_path / "arch_tmp",
        test_dir=tmp_path / "tmp_for_test",
        repair_command=None,
        python_executable="python",
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer WHEELFORGE_* / LATEST_PP_* variables out of tests."""
    for key in list(os.environ):
        if key.startswith(("WHEELFORGE_", "LATEST_PP")):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Archives and downloads
# ---------------------------------------------------------------------------


def make_tar_gz(path: Path, files: dict[str, bytes]) -> Path:
    """Write a .tar.gz at *path* containing *files* (name -> content)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tf:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tf.addfile(info, io.BytesIO(content))
    return path


class FakeResponse:
    """Minimal stand-in for a streamed ``requests.Response``."""

    def __init__(self, payload: bytes, status_error: Exception | None = None,
                 fail_after_first_chunk: Exception | None = None) -> None:
        self._payload = payload
        self._status_error = status_error
        self._fail_after = fail_after_first_chunk

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def raise_for_status(self) -> None:
        if self._status_error is not None:
            raise self._status_error

    def iter_content(self, chunk_size: int = 1):
        half = max(1, len(self._payload) // 2)
        yield self._payload[:half]
        if self._fail_after is not None:
            raise self._fail_after
        yield self._payload[half:]


class FakeDownloads:
    """Serves fixed payloads for ``requests.get`` and counts requests."""

    def __init__(self) -> None:
        self.payloads: dict[str, bytes] = {}
        self.responses: dict[str, FakeResponse] = {}
        self.requested: list[str] = []

    def respond(self, url: str, payload: bytes = b"", **kwargs: Any) -> None:
        """Serve a custom response (e.g. an error) for *url*."""
        self.responses[url] = FakeResponse(payload, **kwargs)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requested.append(url)
        if url in self.responses:
            return self.responses[url]
        return FakeResponse(self.payloads[url])


@pytest.fixture
def fake_downloads(monkeypatch: pytest.MonkeyPatch) -> FakeDownloads:
    """Patch ``requests.get`` in the archive cache with an in-memory server."""
    downloads = FakeDownloads()
    monkeypatch.setattr("wheelforge.core.archive_cache.requests.get", downloads.get)
    return downloads


# ---------------------------------------------------------------------------
# Git fixtures
# ---------------------------------------------------------------------------


def git(*args: str, cwd: Path) -> str:
    """Run git in *cwd* with a deterministic identity; return stdout."""
    proc = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env={**os.environ, **_GIT_ENV},
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout.strip()


def commit_files(repo: Path, files: dict[str, str], message: str) -> str:
    """Write *files* into *repo*, commit them, and return the commit hash."""
    for name, content in files.items():
        target = repo / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    git("add", "-A", cwd=repo)
    git("commit", "-q", "-m", message, cwd=repo)
    return git("rev-parse", "HEAD", cwd=repo)


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Apply the deterministic git identity/config to code under test too."""
    for key, value in _GIT_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def upstream_repo(tmp_path: Path, git_env: None) -> tuple[Path, list[str]]:
    """A standalone upstream repository with two commits.

    Returns the repo path and its commit hashes, oldest first.
    """
    repo = tmp_path / "upstream"
    repo.mkdir()
    git("init", "-q", cwd=repo)
    first = commit_files(repo, {"pkg/__init__.py": "VERSION = '0.1'\n"}, "first")
    second = commit_files(repo, {"pkg/__init__.py": "VERSION = '0.2'\n"}, "second")
    return repo, [first, second]


@pytest.fixture
def submodule_checkout(
    tmp_path: Path, upstream_repo: tuple[Path, list[str]]
) -> tuple[Path, Path, list[str]]:
    """A superproject containing *upstream* as submodule ``sub``.

    Returns ``(super_dir, sub_dir, upstream_commits)``; ``sub_dir/.git``
    is a gitlink file.
    """
    upstream, commits = upstream_repo
    superproject = tmp_path / "super"
    superproject.mkdir()
    git("init", "-q", cwd=superproject)
    git("submodule", "--quiet", "add", os.fspath(upstream), "sub", cwd=superproject)
    git("commit", "-q", "-m", "add submodule", cwd=superproject)
    return superproject, superproject / "sub", commits


@pytest.fixture
def git_run() -> Callable[..., str]:
    """Expose the ``git`` helper to test modules."""
    return git


@pytest.fixture
def git_commit() -> Callable[[Path, dict[str, str], str], str]:
    """Expose the ``commit_files`` helper to test modules."""
    return commit_files


@pytest.fixture
def tar_gz_factory() -> Callable[[Path, dict[str, bytes]], Path]:
    """Expose the ``make_tar_gz`` helper to test modules."""
    return make_tar_gz
