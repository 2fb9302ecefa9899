"""Recursive expansion of symbolic versions through an alias table.

A partial version such as ``"5"`` resolves through the table hop by hop
(``5 -> 5.7 -> 5.7.0``) until a token with no alias is reached. The number
of hops is capped by the table size, so a cyclic table fails with
``ResolutionError`` instead of looping.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from wheelforge.core.errors import MissingParameterError, ResolutionError
from wheelforge.core.version_compare import get_pypy_build_prefix, strip_ver_suffix
from wheelforge.models.versioning import AliasTable

logger = logging.getLogger(__name__)

PYPY_PREFIX = "LATEST_PP"
PYPY_URL = "https://bitbucket.org/pypy/pypy/downloads"

# Latest PyPy releases per series, as of 2017-03-25.
PYPY_ALIASES = AliasTable(
    entries={
        "LATEST_PP_1": "1.9",
        "LATEST_PP_2": "2.6",
        "LATEST_PP_2p0": "2.0.2",
        "LATEST_PP_2p2": "2.2.1",
        "LATEST_PP_2p3": "2.3.1",
        "LATEST_PP_2p4": "2.4.0",
        "LATEST_PP_2p5": "2.5.1",
        "LATEST_PP_2p6": "2.6.1",
        "LATEST_PP_4": "4.0",
        "LATEST_PP_4p0": "4.0.1",
        "LATEST_PP_5": "5.7",
        "LATEST_PP_5p0": "5.0.1",
        "LATEST_PP_5p1": "5.1.1",
        "LATEST_PP_5p3": "5.3.1",
        "LATEST_PP_5p4": "5.4.1",
        "LATEST_PP_5p6": "5.6.0",
        "LATEST_PP_5p7": "5.7.0",
    }
)


class VersionAliasResolver:
    """Resolves ``(prefix, token)`` pairs against an ``AliasTable``.

    Parameters
    ----------
    table:
        The alias table. Must be acyclic.
    """

    def __init__(self, table: AliasTable) -> None:
        self._table = table

    @classmethod
    def from_environ(
        cls,
        table: AliasTable = PYPY_ALIASES,
        environ: Mapping[str, str] | None = None,
    ) -> VersionAliasResolver:
        """Build a resolver whose table is overridden by environment entries.

        ``LATEST_PP_5=5.6`` in the environment re-points the ``5`` alias.
        """
        return cls(table.with_overrides(os.environ if environ is None else environ))

    @property
    def table(self) -> AliasTable:
        return self._table

    def resolve(self, prefix: str, token: str | None) -> str:
        """Follow aliases for *token* until an unaliased value is reached.

        Raises ``MissingParameterError`` for an empty token and
        ``ResolutionError`` when the chain exceeds the table size.
        """
        if not token:
            raise MissingParameterError("version token not defined")

        chain = [token]
        current = token
        for _ in range(self._table.max_chain + 1):
            aliased = self._table.lookup(prefix, current)
            if aliased is None:
                if len(chain) > 1:
                    logger.debug("Resolved %s %s", prefix, " -> ".join(chain))
                return current
            chain.append(aliased)
            current = aliased

        raise ResolutionError(
            f"Alias chain for {prefix} {token!r} does not terminate: "
            + " -> ".join(chain)
        )


def unroll_version(
    prefix: str, version: str | None, table: AliasTable = PYPY_ALIASES
) -> str:
    """Expand *version* under *prefix* using *table*."""
    return VersionAliasResolver(table).resolve(prefix, version)


def fill_pypy_ver(version: str | None, table: AliasTable = PYPY_ALIASES) -> str:
    """Convert a PyPy ``major[.minor[.micro]]`` to ``major.minor.micro``.

    >>> fill_pypy_ver("5")
    '5.7.0'
    """
    return strip_ver_suffix(unroll_version(PYPY_PREFIX, version, table))


def pypy_archive_name(
    version: str | None,
    platform_tag: str = "linux64",
    table: AliasTable = PYPY_ALIASES,
) -> str:
    """Download filename for a PyPy release, e.g. ``pypy2-v5.7.0-linux64.tar.bz2``."""
    full = fill_pypy_ver(version, table)
    return f"{get_pypy_build_prefix(full)}{full}-{platform_tag}.tar.bz2"


def pypy_archive_url(
    version: str | None,
    platform_tag: str = "linux64",
    table: AliasTable = PYPY_ALIASES,
) -> str:
    """Full download URL for a PyPy release archive."""
    return f"{PYPY_URL}/{pypy_archive_name(version, platform_tag, table)}"
