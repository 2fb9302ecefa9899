"""Filesystem and platform helpers shared by the pipeline stages."""

from __future__ import annotations

import logging
import os
import platform
import shutil
from pathlib import Path

from wheelforge.core.errors import MissingParameterError
from wheelforge.core.runner import CommandRunner

logger = logging.getLogger(__name__)


def abspath(path: str | os.PathLike[str]) -> Path:
    return Path(os.path.abspath(path))


def relpath(
    path: str | os.PathLike[str], start: str | os.PathLike[str] | None = None
) -> Path:
    """Path of *path* relative to *start* (default: current directory)."""
    return Path(os.path.relpath(path, start if start is not None else os.curdir))


def realpath(path: str | os.PathLike[str]) -> Path:
    return Path(os.path.realpath(path))


def rm_mkdir(path: str | os.PathLike[str] | None) -> Path:
    """Remove *path* if present, then create it empty."""
    if not path or not os.fspath(path):
        raise MissingParameterError("Need not-empty path")
    target = Path(path)
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    target.mkdir(parents=True)
    return target


def remove_path(path: Path) -> None:
    """Delete a file, symlink, or directory tree."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def get_platform() -> str:
    """Machine architecture as reported by uname, e.g. ``x86_64``."""
    return platform.machine()


def gh_clone(
    repo: str, runner: CommandRunner, cwd: Path | str | None = None
) -> Path:
    """Clone ``owner/name`` from GitHub into *cwd*; return the checkout path."""
    if not repo:
        raise MissingParameterError("GitHub repository not defined")
    runner.run(["git", "clone", f"https://github.com/{repo}"], cwd=cwd)
    return Path(cwd or ".") / repo.rsplit("/", 1)[-1].removesuffix(".git")
