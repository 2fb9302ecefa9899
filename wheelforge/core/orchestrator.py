"""Build pipeline orchestrator — the central coordinator for wheel builds.

The BuildOrchestrator sequences one build:

    pre-build hook -> install build dependencies -> build strategy
        -> repair wheelhouse

and, for builds from a checkout, runs the SourceNormalizer first. It holds
no persistent state; every stage blocks on its subprocess, and the first
failing command aborts the run with the error propagated to the caller.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from wheelforge.config import BuildSettings
from wheelforge.core.errors import MissingParameterError, WheelforgeError
from wheelforge.core.hooks import load_hook
from wheelforge.core.installer import Installer
from wheelforge.core.repair import WheelRepairer, wheel_mtimes
from wheelforge.core.runner import CommandRunner
from wheelforge.core.source_normalizer import SourceNormalizer
from wheelforge.core.strategies import get_strategy
from wheelforge.models.builds import BuildRun, RepoCheckout

logger = logging.getLogger(__name__)


def _changed(wheelhouse: Path, before: dict[str, int]) -> set[str]:
    return {
        name for name, mtime in wheel_mtimes(wheelhouse).items()
        if before.get(name) != mtime
    }


class BuildOrchestrator:
    """Central build pipeline.

    Parameters
    ----------
    settings:
        Build settings. Uses environment-driven defaults if not provided.
    runner:
        Executes every external command.
    repairer:
        Post-build repair stage. Built from ``settings.repair_command`` if
        not provided.
    pre_build:
        Zero-argument hook run before anything else. Loaded from
        ``settings.pre_build_hook`` if not provided.
    """

    def __init__(
        self,
        settings: BuildSettings | None = None,
        runner: CommandRunner | None = None,
        repairer: WheelRepairer | None = None,
        *,
        pre_build: Callable[[], Any] | None = None,
    ) -> None:
        self.settings = settings or BuildSettings()
        self.runner = runner or CommandRunner()
        self.repairer = repairer or WheelRepairer(self.settings.repair_command, self.runner)
        self.pre_build = pre_build or load_hook(self.settings.pre_build_hook)
        self.normalizer = SourceNormalizer(self.runner)
        self.installer = Installer(self.settings, self.runner)

    @property
    def wheelhouse(self) -> Path:
        """Absolute wheelhouse path. Created by the build, after the pre-build hook."""
        return Path(os.path.abspath(self.settings.wheel_sdir))

    # ------------------------------------------------------------------
    # Shared stages
    # ------------------------------------------------------------------

    def _run_pre_build(self) -> None:
        if self.pre_build is not None:
            logger.info("Running pre-build hook")
            self.pre_build()

    def _install_build_depends(self, *pip_args: str) -> None:
        depends = self.settings.build_depends_list
        if not depends:
            return
        logger.info("Installing build dependencies: %s", " ".join(depends))
        self.runner.run(
            [
                *self.settings.pip_command,
                "install",
                *self.settings.pip_opts,
                *pip_args,
                *depends,
            ]
        )

    def _finish(self, wheelhouse: Path, before: dict[str, int]) -> list[str]:
        """Repair this build's wheels; return wheels new or rewritten since *before*."""
        built = sorted(_changed(wheelhouse, before))
        self.repairer.repair_wheelhouse(wheelhouse, [wheelhouse / name for name in built])
        produced = sorted(_changed(wheelhouse, before))
        if not produced:
            logger.error("Build left no new wheels in %s", wheelhouse)
            raise WheelforgeError(f"Build produced no wheels in {wheelhouse}")
        logger.info("Built %s", ", ".join(produced))
        return produced

    # ------------------------------------------------------------------
    # Builds from a repository
    # ------------------------------------------------------------------

    def build_wheel_cmd(
        self, strategy: str = "pip", repo_dir: Path | str | None = None
    ) -> BuildRun:
        """Build a wheel from *repo_dir* with the named strategy.

        Lifecycle:
        1. Pre-build hook (if configured)
        2. Install build dependencies (if declared)
        3. Run the strategy in *repo_dir* against the absolute wheelhouse
        4. Repair the wheelhouse
        """
        repo_dir = repo_dir or self.settings.repo_dir
        if not repo_dir:
            raise MissingParameterError("repo_dir not defined")
        build = get_strategy(strategy)
        repo = Path(os.path.abspath(repo_dir))
        wheelhouse = self.wheelhouse
        before = wheel_mtimes(wheelhouse)

        self._run_pre_build()
        wheelhouse.mkdir(parents=True, exist_ok=True)
        self._install_build_depends()
        logger.info("Building %s with %s strategy", repo, strategy)
        build(wheelhouse, repo, self.settings, self.runner)

        return BuildRun(
            repo_dir=repo,
            build_strategy=strategy,
            wheelhouse_dir=wheelhouse,
            build_dependencies=self.settings.build_depends_list,
            has_pre_build_hook=self.pre_build is not None,
            wheels=self._finish(wheelhouse, before),
        )

    def build_pip_wheel(self, repo_dir: Path | str | None = None) -> BuildRun:
        """Standard wheel build with ``pip wheel``."""
        return self.build_wheel_cmd("pip", repo_dir)

    def build_bdist_wheel(self, repo_dir: Path | str | None = None) -> BuildRun:
        """Wheel build with ``setup.py bdist_wheel``."""
        return self.build_wheel_cmd("bdist", repo_dir)

    def build_wheel(self, repo_dir: Path | str | None = None) -> BuildRun:
        """Default build method (pip)."""
        return self.build_pip_wheel(repo_dir)

    def build_from_checkout(
        self, checkout: RepoCheckout | None = None, strategy: str = "pip"
    ) -> BuildRun:
        """Normalize the source checkout, then build it.

        Falls back to ``settings.repo_dir`` / ``settings.build_commit``.
        """
        if checkout is None:
            checkout = self.normalizer.clean_code(settings=self.settings)
        else:
            self.normalizer.normalize(checkout)
        return self.build_wheel_cmd(strategy, checkout.directory)

    # ------------------------------------------------------------------
    # Builds from an index
    # ------------------------------------------------------------------

    def build_index_wheel(self, project_spec: str, *pip_args: str) -> BuildRun:
        """Build a wheel for *project_spec* (e.g. ``"tornado==4.4.1"``) from an index.

        *pip_args* go to both the dependency install and ``pip wheel``.
        """
        if not project_spec:
            raise MissingParameterError("project_spec not defined")
        wheelhouse = self.wheelhouse
        before = wheel_mtimes(wheelhouse)

        self._run_pre_build()
        wheelhouse.mkdir(parents=True, exist_ok=True)
        self._install_build_depends(*pip_args)
        logger.info("Building %s from index", project_spec)
        self.runner.run(
            [
                *self.settings.pip_command,
                "wheel",
                *self.settings.pip_opts,
                *pip_args,
                "-w",
                wheelhouse,
                "--no-deps",
                project_spec,
            ]
        )

        return BuildRun(
            project_spec=project_spec,
            build_strategy="index",
            wheelhouse_dir=wheelhouse,
            build_dependencies=self.settings.build_depends_list,
            has_pre_build_hook=self.pre_build is not None,
            wheels=self._finish(wheelhouse, before),
        )
