"""Install built wheels and run the caller's tests in isolation.

Compatible wheels are picked from the wheelhouse by matching each wheel's
tags against the tags this interpreter supports, keeping the newest wheel
of each project, then installed after the declared test dependencies.
Tests run in a freshly emptied directory so that imports resolve to the
installed package, not the build tree.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from packaging.tags import Tag, sys_tags
from packaging.utils import InvalidWheelFilename, NormalizedName, parse_wheel_filename
from packaging.version import Version

from wheelforge.config import BuildSettings
from wheelforge.core.errors import WheelforgeError
from wheelforge.core.paths import rm_mkdir
from wheelforge.core.runner import CommandRunner
from wheelforge.models.builds import InstalledArtifact

logger = logging.getLogger(__name__)

WheelSelector = Callable[[Iterable[Path]], list[Path]]


def select_compatible_wheels(
    candidates: Iterable[Path], supported: Iterable[Tag] | None = None
) -> list[Path]:
    """Return one installable wheel per project from *candidates*.

    Wheels are grouped by canonical project name. Within a group the highest
    version wins, and among wheels of that version the one whose best tag
    comes earliest in *supported* (``sys_tags()`` priority by default).
    Files whose names do not parse as wheel filenames are ignored.
    """
    priority: dict[Tag, int] = {}
    for rank, tag in enumerate(supported if supported is not None else sys_tags()):
        priority.setdefault(tag, rank)

    best: dict[NormalizedName, tuple[Version, int, Path]] = {}
    for wheel in candidates:
        try:
            name, version, _, tags = parse_wheel_filename(wheel.name)
        except InvalidWheelFilename:
            logger.debug("Ignoring non-wheel %s", wheel.name)
            continue
        ranks = [priority[tag] for tag in tags if tag in priority]
        if not ranks:
            continue
        current = best.get(name)
        # Higher version first, then lower (better) tag rank.
        if current is None or (version, -min(ranks)) > (current[0], -current[1]):
            best[name] = (version, min(ranks), wheel)

    selected: list[Path] = []
    for name, (version, _, wheel) in sorted(best.items()):
        logger.debug("Selected %s %s: %s", name, version, wheel.name)
        selected.append(wheel)
    return sorted(selected)


class Installer:
    """Installs test dependencies and compatible wheels, then runs tests.

    Parameters
    ----------
    settings:
        Supplies wheelhouse, test dependencies, pip options and test dir.
    runner:
        Executes pip.
    selector:
        Picks installable wheels from the wheelhouse.
    """

    def __init__(
        self,
        settings: BuildSettings,
        runner: CommandRunner | None = None,
        selector: WheelSelector = select_compatible_wheels,
    ) -> None:
        self.settings = settings
        self._runner = runner or CommandRunner()
        self._selector = selector

    @property
    def wheelhouse(self) -> Path:
        return Path(os.path.abspath(self.settings.wheel_sdir))

    def install_wheel(self, *pip_args: str) -> InstalledArtifact:
        """Install test dependencies, then the compatible built wheels.

        *pip_args* are passed to both pip install steps.
        """
        s = self.settings
        pip = [*s.pip_command, "install", *s.pip_opts, *pip_args]

        if s.test_depends_list:
            logger.info("Installing test dependencies: %s", " ".join(s.test_depends_list))
            self._runner.run([*pip, *s.test_depends_list])

        wheels = self._selector(sorted(self.wheelhouse.glob("*.whl")))
        if not wheels:
            logger.error("No compatible wheel in %s", self.wheelhouse)
            raise WheelforgeError(f"No compatible wheel found in {self.wheelhouse}")

        logger.info("Installing %s", ", ".join(w.name for w in wheels))
        self._runner.run([*pip, *wheels])
        return InstalledArtifact(
            wheelhouse_dir=self.wheelhouse,
            installed=[w.name for w in wheels],
            test_dependencies=s.test_depends_list,
        )

    def install_run(
        self, run_tests: Callable[[Path], Any], *pip_args: str
    ) -> InstalledArtifact:
        """Install, recreate an empty test directory, run *run_tests* in it.

        *run_tests* receives the absolute test directory and should pass it
        as ``cwd`` to anything it spawns.
        """
        artifact = self.install_wheel(*pip_args)
        test_dir = rm_mkdir(Path(os.path.abspath(self.settings.test_dir)))
        logger.info("Running tests in %s", test_dir)
        run_tests(test_dir)
        return artifact.model_copy(update={"test_dir": test_dir})
