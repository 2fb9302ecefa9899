"""Wheelforge data models — all Pydantic v2, all frozen (immutable)."""

from wheelforge.models.archives import ArchiveSpec
from wheelforge.models.builds import (
    BuildRun,
    BuildStrategyName,
    InstalledArtifact,
    RepoCheckout,
)
from wheelforge.models.versioning import DOT_MARKER, AliasTable

__all__ = [
    # versioning
    "AliasTable",
    "DOT_MARKER",
    # archives
    "ArchiveSpec",
    # builds
    "BuildRun",
    "BuildStrategyName",
    "InstalledArtifact",
    "RepoCheckout",
]
