"""Error taxonomy for the build pipeline.

Every failure is fail-fast: nothing in the pipeline retries or recovers.
The CLI turns any ``WheelforgeError`` into a non-zero exit with its message.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class WheelforgeError(RuntimeError):
    """Base class for all pipeline failures."""


class FetchError(WheelforgeError):
    """Raised when an archive cannot be downloaded or fails verification."""


class UnsupportedArchiveError(WheelforgeError):
    """Raised when an archive extension is not one we know how to unpack."""


class ResolutionError(WheelforgeError):
    """Raised for alias cycles, malformed alias tables, or unparseable versions."""


class MissingParameterError(WheelforgeError):
    """Raised when a required argument or setting is absent."""


class SubprocessError(WheelforgeError):
    """Raised when an external command exits non-zero.

    Parameters
    ----------
    args:
        The command line that was run.
    returncode:
        The process exit status.
    cwd:
        Working directory the command ran in.
    output:
        Captured combined stdout/stderr, if any.
    """

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        *,
        cwd: Path | None = None,
        output: str = "",
    ) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.cwd = cwd
        self.output = output
        where = f" (in {cwd})" if cwd is not None else ""
        message = f"Command {' '.join(self.command)!r} exited {returncode}{where}"
        if output:
            message += f"\n{output.strip()}"
        super().__init__(message)


class GitOperationError(SubprocessError):
    """Raised when any version-control step fails."""
