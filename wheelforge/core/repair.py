"""Post-build wheel repair — rewriting platform tags in the wheelhouse.

The repair tool itself (auditwheel on Linux, delocate on macOS) is opaque;
this module only decides which wheels to hand it and how to call it.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Iterable
from pathlib import Path

from wheelforge.core.runner import CommandRunner

logger = logging.getLogger(__name__)


def wheel_mtimes(wheelhouse: Path) -> dict[str, int]:
    """Map each wheel filename in *wheelhouse* to its modification time (ns)."""
    return {p.name: p.stat().st_mtime_ns for p in Path(wheelhouse).glob("*.whl")}


def is_pure_wheel(wheel: Path) -> bool:
    """Whether *wheel* is tagged platform-independent (``-none-any``)."""
    return wheel.name.endswith("-none-any.whl")


class WheelRepairer:
    """Runs the configured repair command once per platform wheel.

    Parameters
    ----------
    command:
        Command template with ``{wheelhouse}`` and ``{wheel}`` placeholders,
        or None to disable repair.
    runner:
        Executes the command.
    """

    def __init__(self, command: str | None, runner: CommandRunner | None = None) -> None:
        self.command = command
        self._runner = runner or CommandRunner()

    def repair_wheelhouse(
        self, wheelhouse: Path, wheels: Iterable[Path] | None = None
    ) -> list[Path]:
        """Repair platform wheels in *wheelhouse*; return those repaired.

        *wheels* limits the run to the given files (the output of one build);
        by default every wheel in the wheelhouse is considered. Once the tool
        has written or rewritten some other wheel, the unrepaired original is
        removed. A tool that fixes the wheel in place keeps its name.
        """
        if not self.command:
            logger.info("No repair command configured; leaving %s as built", wheelhouse)
            return []

        wheelhouse = Path(wheelhouse)
        candidates = sorted(wheelhouse.glob("*.whl") if wheels is None else wheels)
        repaired: list[Path] = []
        for wheel in candidates:
            if is_pure_wheel(wheel):
                logger.debug("Skipping pure wheel %s", wheel.name)
                continue
            argv = [
                part.format(wheelhouse=wheelhouse, wheel=wheel)
                for part in shlex.split(self.command)
            ]
            before = wheel_mtimes(wheelhouse)
            logger.info("Repairing %s", wheel.name)
            self._runner.run(argv, cwd=wheelhouse)
            after = wheel_mtimes(wheelhouse)
            written = {
                name for name, mtime in after.items()
                if name != wheel.name and before.get(name) != mtime
            }
            if written and wheel.exists():
                logger.debug("Replacing %s with %s", wheel.name, ", ".join(sorted(written)))
                wheel.unlink()
            repaired.append(wheel)
        return repaired
