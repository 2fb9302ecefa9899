"""Alias table model — symbolic version expansion data."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

# Marker replacing "." in alias keys, so "5.7" is stored under "<PREFIX>_5p7".
DOT_MARKER = "p"


class AliasTable(BaseModel):
    """Static mapping from ``(prefix, partial version)`` to a version.

    Entries are keyed by the flat alias name ``"<PREFIX>_<token>"`` with dots
    in the token replaced by ``DOT_MARKER``. A value may itself be a partial
    version that is present in the table, forming a chain. Chains must be
    acyclic; the resolver enforces that.
    """

    model_config = ConfigDict(frozen=True)

    entries: dict[str, str] = {}

    @staticmethod
    def key(prefix: str, token: str) -> str:
        """Return the flat alias name for *token* under *prefix*."""
        return f"{prefix}_{token.replace('.', DOT_MARKER)}"

    def lookup(self, prefix: str, token: str) -> str | None:
        """Return the aliased value for *token*, or None if not aliased."""
        return self.entries.get(self.key(prefix, token)) or None

    @property
    def max_chain(self) -> int:
        """Upper bound on hops any acyclic chain in this table can take."""
        return len(self.entries)

    def prefixes(self) -> set[str]:
        """Return the set of prefixes present in the table."""
        return {name.rsplit("_", 1)[0] for name in self.entries}

    def with_overrides(
        self,
        overrides: Mapping[str, str],
        prefixes: Iterable[str] | None = None,
    ) -> AliasTable:
        """Return a copy where matching *overrides* replace or extend entries.

        Only keys of the form ``"<PREFIX>_<token>"`` for one of *prefixes*
        (default: the prefixes already in the table) are taken, so an
        environment mapping can be passed in whole.
        """
        wanted = set(prefixes) if prefixes is not None else self.prefixes()
        merged = dict(self.entries)
        for name, value in overrides.items():
            head, sep, _ = name.rpartition("_")
            if sep and head in wanted and value:
                merged[name] = value
        return AliasTable(entries=merged)
