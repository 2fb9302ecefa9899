"""External command execution with an explicit working directory.

All subprocesses in the pipeline go through ``CommandRunner``. The working
directory is always passed in, never taken from a process-wide ``chdir``.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from wheelforge.core.errors import SubprocessError

logger = logging.getLogger(__name__)

Argv = Sequence["str | os.PathLike[str]"]


class CommandRunner:
    """Runs external commands synchronously and fails fast on non-zero exit.

    Parameters
    ----------
    env:
        Extra environment variables layered on top of the inherited
        environment for every command.
    capture:
        When True, output of ``run()`` is captured and attached to the
        raised ``SubprocessError``. When False, output streams straight to
        the terminal, which is what long builds want.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        *,
        capture: bool = False,
    ) -> None:
        self._env = dict(env or {})
        self._capture = capture

    def run(
        self,
        args: Argv,
        *,
        cwd: Path | str | None = None,
        error_cls: type[SubprocessError] = SubprocessError,
    ) -> str:
        """Run *args* in *cwd*; return captured output (empty if not capturing).

        Raises *error_cls* on non-zero exit, when the executable is missing,
        or when *cwd* is not a usable directory.
        """
        argv, workdir = self._prepare(args, cwd, error_cls)
        proc = self._spawn(
            argv,
            workdir,
            error_cls,
            stdout=subprocess.PIPE if self._capture else None,
            stderr=subprocess.STDOUT if self._capture else None,
        )
        output = proc.stdout or ""
        if proc.returncode != 0:
            logger.error("%s failed with exit code %d", argv[0], proc.returncode)
            raise error_cls(argv, proc.returncode, cwd=workdir, output=output)
        return output

    def output(
        self,
        args: Argv,
        *,
        cwd: Path | str | None = None,
        error_cls: type[SubprocessError] = SubprocessError,
    ) -> str:
        """Run *args* always capturing stdout, and return it stripped."""
        argv, workdir = self._prepare(args, cwd, error_cls)
        proc = self._spawn(
            argv, workdir, error_cls, stdout=subprocess.PIPE, stderr=subprocess.PIPE
        )
        if proc.returncode != 0:
            logger.error("%s failed with exit code %d", argv[0], proc.returncode)
            raise error_cls(argv, proc.returncode, cwd=workdir, output=proc.stderr)
        return proc.stdout.strip()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _prepare(
        args: Argv, cwd: Path | str | None, error_cls: type[SubprocessError]
    ) -> tuple[list[str], Path | None]:
        argv = [os.fspath(a) for a in args]
        workdir = Path(cwd) if cwd is not None else None
        logger.debug("$ %s  [cwd=%s]", " ".join(argv), workdir or ".")
        if workdir is not None and not workdir.is_dir():
            logger.error("Working directory %s does not exist", workdir)
            raise error_cls(
                argv, 1, cwd=workdir, output=f"working directory {workdir} does not exist"
            )
        return argv, workdir

    def _spawn(
        self,
        argv: list[str],
        workdir: Path | None,
        error_cls: type[SubprocessError],
        **streams: Any,
    ) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                argv,
                cwd=workdir,
                env=self._environ(),
                text=True,
                check=False,
                **streams,
            )
        except FileNotFoundError as exc:
            logger.error("Executable not found: %s", argv[0])
            raise error_cls(argv, 127, cwd=workdir, output=str(exc)) from exc
        except OSError as exc:
            # PermissionError, NotADirectoryError and the like: cannot execute.
            logger.error("Cannot execute %s: %s", argv[0], exc)
            raise error_cls(argv, 126, cwd=workdir, output=str(exc)) from exc

    def _environ(self) -> dict[str, str] | None:
        if not self._env:
            return None
        return {**os.environ, **self._env}
