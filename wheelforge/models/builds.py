"""Build pipeline models — checkouts, runs, and installed artifacts."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

BuildStrategyName = Literal["pip", "bdist"]


class RepoCheckout(BaseModel):
    """A repository working copy and the commit it must end up at."""

    model_config = ConfigDict(frozen=True)

    directory: Path
    target_commit: str


class BuildRun(BaseModel):
    """Record of one orchestrator invocation. Not persisted."""

    model_config = ConfigDict(frozen=True)

    repo_dir: Path | None = None  # None for index builds
    project_spec: str | None = None  # set for index builds
    build_strategy: BuildStrategyName | Literal["index"] = "pip"
    wheelhouse_dir: Path
    build_dependencies: list[str] = []
    has_pre_build_hook: bool = False
    wheels: list[str] = []
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class InstalledArtifact(BaseModel):
    """Wheels selected from the wheelhouse and installed, plus test deps."""

    model_config = ConfigDict(frozen=True)

    wheelhouse_dir: Path
    installed: list[str]
    test_dependencies: list[str] = []
    test_dir: Path | None = None
