"""Wheelforge: reproducible wheel builds across heterogeneous build hosts.

  - Fetch-once archive cache with mirroring unpack
  - Git submodule repair and clean checkouts at an exact commit
  - Recursive version alias resolution (e.g. PyPy "5" -> "5.7.0")
  - Build -> repair -> install -> test pipeline with optional hooks
"""

__version__ = "0.1.0"
__description__ = "Reproducible wheel builds: fetch, normalize, build, repair, install"

from wheelforge.core.orchestrator import BuildOrchestrator
from wheelforge.cli.app import app as cli

__all__ = ["BuildOrchestrator", "cli", "__version__"]
