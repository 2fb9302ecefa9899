"""Padded version keys for ordering and normalization.

Each of the first three dot components is zero-padded to three digits and
concatenated::

    3.2.1 -> 003002001
    3     -> 003000000

Padded keys sort lexicographically in the same order as the numeric
versions, so ``lex_ver("5.3.0") < lex_ver("5.10.0")``.
"""

from __future__ import annotations

import re

from wheelforge.core.errors import ResolutionError

COMPONENT_WIDTH = 3
COMPONENT_COUNT = 3
_MAX_COMPONENT = 10**COMPONENT_WIDTH - 1
_KEY_LENGTH = COMPONENT_WIDTH * COMPONENT_COUNT

_LEADING_DIGITS = re.compile(r"\d+")
_MAJOR_MINOR = re.compile(r"(\d+)\.(\d+)")

# First PyPy release published under the "pypy2-v" filename scheme.
PYPY2_PREFIX_CUTOFF = "5.3.0"


def _components(version: str) -> list[int]:
    """Leading-digit integer value of the first three components.

    Missing or digit-less minor/micro components count as zero, so
    ``"3.6.0rc1"`` parses like ``"3.6.0"``.
    """
    parts = (version or "").strip().split(".")
    values: list[int] = []
    for index in range(COMPONENT_COUNT):
        part = parts[index] if index < len(parts) else ""
        match = _LEADING_DIGITS.match(part)
        if match is None:
            if index == 0:
                raise ResolutionError(f"Cannot parse version {version!r}")
            values.append(0)
            continue
        value = int(match.group())
        if value > _MAX_COMPONENT:
            raise ResolutionError(
                f"Version component {value} in {version!r} exceeds "
                f"{COMPONENT_WIDTH} digits"
            )
        values.append(value)
    return values


def lex_ver(version: str) -> str:
    """Return the padded, lexicographically comparable key for *version*."""
    return "".join(f"{c:0{COMPONENT_WIDTH}d}" for c in _components(version))


def unlex_ver(key: str) -> str:
    """Reverse ``lex_ver``: ``"003002001"`` -> ``"3.2.1"``."""
    if len(key) != _KEY_LENGTH or not key.isdigit():
        raise ResolutionError(f"Not a padded version key: {key!r}")
    return ".".join(
        str(int(key[i : i + COMPONENT_WIDTH]))
        for i in range(0, _KEY_LENGTH, COMPONENT_WIDTH)
    )


def strip_ver_suffix(version: str) -> str:
    """Normalize to ``major.minor.micro``; idempotent."""
    return unlex_ver(lex_ver(version))


def get_pypy_build_prefix(version: str) -> str:
    """Return the download filename prefix used for a PyPy release.

    Releases from 5.3 onwards are named ``pypy2-v<version>``; earlier ones
    ``pypy-<version>``. *version* must carry at least ``major.minor``.
    """
    if _MAJOR_MINOR.search(version or "") is None:
        raise ResolutionError(f"Expected version number, got {version!r}")
    if lex_ver(version) >= lex_ver(PYPY2_PREFIX_CUTOFF):
        return "pypy2-v"
    return "pypy-"
