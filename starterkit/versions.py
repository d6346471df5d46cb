"""Version string comparison.

Tool output is messy (``v20.16.0``, ``9.5.0-beta``, ``26.1.4,``), so versions
are normalised before comparison: a leading ``v``/``V`` is dropped and the
string is cut at the first character that is neither a digit nor a dot.
"""

from __future__ import annotations

import re
from enum import IntEnum
from typing import NamedTuple

_LEADING_V_RE = re.compile(r"^[vV]")
_TRAILING_JUNK_RE = re.compile(r"[^0-9.].*$", re.DOTALL)


class Ordering(IntEnum):
    """Outcome of :func:`compare_versions`."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


class VersionTriple(NamedTuple):
    """``(major, minor, patch)`` with missing components as 0."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def normalize_version(raw: str) -> str:
    """Strip the ``v`` prefix and any non-numeric suffix.

    Examples::

        normalize_version("v20.16.0")      -> "20.16.0"
        normalize_version("9.5.0-beta.1")  -> "9.5.0"
        normalize_version("26.1.4,")       -> "26.1.4"
    """
    value = _LEADING_V_RE.sub("", raw.strip())
    return _TRAILING_JUNK_RE.sub("", value)


def version_components(raw: str) -> list[int]:
    """Split a normalised version into integer components.

    Empty components (``"1..2"``, ``""``) count as 0.
    """
    normalized = normalize_version(raw)
    return [int(part) if part else 0 for part in normalized.split(".")]


def parse_version(raw: str) -> VersionTriple:
    """Parse *raw* into a :class:`VersionTriple`."""
    parts = (version_components(raw) + [0, 0, 0])[:3]
    return VersionTriple(*parts)


def compare_versions(first: str, second: str) -> Ordering:
    """Compare two version strings component by component.

    The second version is zero-padded to the length of the first.  When every
    compared component is equal but the first version has fewer components
    than the second, the first is reported as ``LESS``: ``"9.5"`` does not
    meet ``"9.5.0"`` while ``"9.5.0"`` does meet ``"9.5"``.
    """
    left = version_components(first)
    right = version_components(second)

    for index, value in enumerate(left):
        other = right[index] if index < len(right) else 0
        if value > other:
            return Ordering.GREATER
        if value < other:
            return Ordering.LESS

    if len(left) < len(right):
        return Ordering.LESS
    return Ordering.EQUAL


def meets_requirement(current: str, required: str) -> bool:
    """Return ``True`` when *current* is at least *required*."""
    return compare_versions(current, required) is not Ordering.LESS
