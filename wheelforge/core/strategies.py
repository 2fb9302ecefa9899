"""Interchangeable wheel-build commands.

A strategy receives the absolute wheelhouse path and the repository
directory to build in, and must leave one or more ``.whl`` files in the
wheelhouse. Both strategies run with ``cwd`` set explicitly.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from wheelforge.config import BuildSettings
from wheelforge.core.errors import WheelforgeError
from wheelforge.core.runner import CommandRunner

logger = logging.getLogger(__name__)

BuildStrategy = Callable[[Path, Path, BuildSettings, CommandRunner], None]


def pip_wheel_cmd(
    wheelhouse: Path,
    repo_dir: Path,
    settings: BuildSettings,
    runner: CommandRunner,
) -> None:
    """Build in place with ``pip wheel --no-deps .``."""
    runner.run(
        [
            *settings.pip_command,
            "wheel",
            *settings.pip_opts,
            "-w",
            wheelhouse,
            "--no-deps",
            ".",
        ],
        cwd=repo_dir,
    )


def bdist_wheel_cmd(
    wheelhouse: Path,
    repo_dir: Path,
    settings: BuildSettings,
    runner: CommandRunner,
) -> None:
    """Build with ``setup.py bdist_wheel`` and copy ``dist/*.whl`` over.

    Useful for projects whose version machinery (versioneer, for one)
    misbehaves under ``pip wheel``.
    """
    runner.run([settings.python_executable, "setup.py", "bdist_wheel"], cwd=repo_dir)
    built = sorted((repo_dir / "dist").glob("*.whl"))
    if not built:
        raise WheelforgeError(f"bdist_wheel left no wheels in {repo_dir / 'dist'}")
    wheelhouse.mkdir(parents=True, exist_ok=True)
    for wheel in built:
        logger.debug("Copying %s to %s", wheel.name, wheelhouse)
        shutil.copy2(wheel, wheelhouse / wheel.name)


BUILD_STRATEGIES: dict[str, BuildStrategy] = {
    "pip": pip_wheel_cmd,
    "bdist": bdist_wheel_cmd,
}


def get_strategy(name: str) -> BuildStrategy:
    """Look up a registered build strategy by name."""
    try:
        return BUILD_STRATEGIES[name]
    except KeyError:
        raise WheelforgeError(
            f"Unknown build strategy {name!r}; "
            f"expected one of {sorted(BUILD_STRATEGIES)}"
        ) from None
