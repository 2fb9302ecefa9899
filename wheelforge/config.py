"""Build configuration — env-driven.

Centralized settings using pydantic-settings. Reads from a .env file and
WHEELFORGE_* environment variables, so a CI matrix can drive the pipeline
without code changes.
"""

from __future__ import annotations

import platform
import sys
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_repair_command() -> str | None:
    system = platform.system()
    if system == "Linux":
        return "auditwheel repair -w {wheelhouse} {wheel}"
    if system == "Darwin":
        return "delocate-wheel -w {wheelhouse} {wheel}"
    return None


class BuildSettings(BaseSettings):
    """Pipeline settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export WHEELFORGE_REPO_DIR=numpy
        export WHEELFORGE_BUILD_COMMIT=v1.26.4
        export WHEELFORGE_BUILD_DEPENDS="cython meson-python"
        export WHEELFORGE_MANYLINUX_URL=https://example.org/wheels

    Or via .env file::

        WHEELFORGE_WHEEL_SDIR=dist-wheels
        WHEELFORGE_TEST_DEPENDS=pytest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WHEELFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage paths
    archive_sdir: Path = Path("archives")
    wheel_sdir: Path = Path("wheelhouse")
    scratch_dir: Path = Path("arch_tmp")
    test_dir: Path = Path("tmp_for_test")

    # Source checkout
    repo_dir: Path | None = None
    build_commit: str | None = None

    # Dependencies (whitespace separated requirement specs)
    build_depends: str = ""
    test_depends: str = ""

    # Alternate index; enables --find-links mode when set
    manylinux_url: str | None = None

    # Hooks, as "module:attribute" strings
    pre_build_hook: str | None = None
    run_tests_hook: str | None = None

    # Tools
    repair_command: str | None = _default_repair_command()
    python_executable: str = sys.executable
    download_timeout_seconds: int = 300

    # Observability
    log_level: str = "INFO"

    @property
    def build_depends_list(self) -> list[str]:
        """Build-time requirements as a list."""
        return self.build_depends.split()

    @property
    def test_depends_list(self) -> list[str]:
        """Test-time requirements as a list."""
        return self.test_depends.split()

    @property
    def pip_opts(self) -> list[str]:
        """Extra index options passed to every pip invocation."""
        if self.manylinux_url:
            return ["--find-links", self.manylinux_url]
        return []

    @property
    def pip_command(self) -> list[str]:
        """The pip invocation bound to the configured interpreter."""
        return [self.python_executable, "-m", "pip"]

    @property
    def is_osx(self) -> bool:
        """Whether running on macOS."""
        return platform.system() == "Darwin"


# Module-level singleton: import as `from wheelforge.config import settings`
settings = BuildSettings()
