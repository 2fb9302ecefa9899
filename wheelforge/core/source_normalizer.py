"""Source checkout normalization — standalone git repos at an exact commit.

A package checked out as a git submodule has a ``.git`` *file* (a gitlink)
rather than a ``.git`` directory. Once such a tree is copied around (into a
container, say), tools that need real repository metadata, such as
versioneer or setuptools-scm, can no longer find it. ``ensure_git_repo``
rebuilds a full ``.git`` directory by cloning the checkout from itself;
``clean_checkout`` then forces the tree to the requested commit with no
untracked or modified files.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from wheelforge.config import BuildSettings
from wheelforge.core.errors import GitOperationError, MissingParameterError, WheelforgeError
from wheelforge.core.runner import CommandRunner
from wheelforge.models.builds import RepoCheckout

logger = logging.getLogger(__name__)


class SourceNormalizer:
    """Makes repository working copies standalone and clean.

    Parameters
    ----------
    runner:
        Executes git commands with an explicit working directory.
    git:
        The git executable.
    """

    def __init__(self, runner: CommandRunner | None = None, *, git: str = "git") -> None:
        self._runner = runner or CommandRunner()
        self._git = git

    def _run(self, repo_dir: Path, *args: str) -> None:
        self._runner.run([self._git, *args], cwd=repo_dir, error_cls=GitOperationError)

    def origin_url(self, repo_dir: Path) -> str:
        """Return ``remote.origin.url`` for the repository at *repo_dir*."""
        url = self._runner.output(
            [self._git, "config", "--get", "remote.origin.url"],
            cwd=repo_dir,
            error_cls=GitOperationError,
        )
        if not url:
            raise GitOperationError(
                [self._git, "config", "--get", "remote.origin.url"],
                1,
                cwd=repo_dir,
                output="no origin URL configured",
            )
        return url

    # ------------------------------------------------------------------
    # Submodule repair
    # ------------------------------------------------------------------

    def ensure_git_repo(self, repo_dir: Path | str | None) -> bool:
        """Give *repo_dir* a real ``.git`` directory if it lacks one.

        Returns True if the repository was rebuilt, False if it was already
        standalone. A failed clone leaves the original directory untouched.
        """
        if not repo_dir:
            raise MissingParameterError("repo_dir not defined")
        repo = Path(os.path.abspath(repo_dir))
        if (repo / ".git").is_dir():
            logger.debug("%s is already a standalone repository", repo)
            return False

        origin = self.origin_url(repo)
        logger.info("Rebuilding .git directory for %s (origin %s)", repo, origin)

        copy = Path(tempfile.mkdtemp(prefix=f"{repo.name}-", dir=repo.parent))
        try:
            self._runner.run(
                [self._git, "clone", "--recursive", os.fspath(repo), os.fspath(copy)],
                cwd=repo.parent,
                error_cls=GitOperationError,
            )
        except GitOperationError:
            shutil.rmtree(copy, ignore_errors=True)
            raise

        self._swap_in(copy, repo)
        self._run(repo, "remote", "set-url", "origin", origin)
        return True

    @staticmethod
    def _swap_in(clone: Path, repo: Path) -> None:
        """Put *clone* at *repo*, restoring the original tree if the move fails."""
        retired = clone.with_name(f"{clone.name}.orig")
        os.replace(repo, retired)
        try:
            os.replace(clone, repo)
        except OSError as exc:
            os.replace(retired, repo)
            shutil.rmtree(clone, ignore_errors=True)
            logger.error("Could not move rebuilt clone into %s: %s", repo, exc)
            raise WheelforgeError(f"Could not replace {repo} with its clone: {exc}") from exc
        shutil.rmtree(retired)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def clean_checkout(self, repo_dir: Path | str, commit: str) -> None:
        """Force *repo_dir* to *commit* with no untracked or modified files.

        Runs fetch, a forced checkout, ``clean -fxd``, ``reset --hard`` and a
        recursive submodule update; the first failing step raises
        ``GitOperationError`` and nothing after it runs.
        """
        if not commit:
            raise MissingParameterError("build_commit not defined")
        repo = Path(repo_dir)
        logger.info("Checking out %s at %s", repo, commit)
        self._run(repo, "fetch", "origin")
        self._run(repo, "checkout", "--force", commit)
        self._run(repo, "clean", "-fxd")
        self._run(repo, "reset", "--hard")
        self._run(repo, "submodule", "update", "--init", "--recursive")

    def normalize(self, checkout: RepoCheckout) -> None:
        """Make *checkout* standalone, then clean it at its target commit."""
        self.ensure_git_repo(checkout.directory)
        self.clean_checkout(checkout.directory, checkout.target_commit)

    def clean_code(
        self,
        repo_dir: Path | str | None = None,
        build_commit: str | None = None,
        *,
        settings: BuildSettings | None = None,
    ) -> RepoCheckout:
        """``normalize`` with arguments defaulting to the configured settings."""
        repo_dir = repo_dir or (settings.repo_dir if settings else None)
        build_commit = build_commit or (settings.build_commit if settings else None)
        if not repo_dir:
            raise MissingParameterError("repo_dir not defined")
        if not build_commit:
            raise MissingParameterError("build_commit not defined")
        checkout = RepoCheckout(directory=Path(repo_dir), target_commit=build_commit)
        self.normalize(checkout)
        return checkout
