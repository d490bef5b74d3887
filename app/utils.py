"""Utility helpers for the AnimePool service."""

from __future__ import annotations

import re
from typing import Any


_EXCLUDED_TITLES = frozenset(
    title.casefold()
    for title in (
        "86 EIGHTY-SIX",
        "86",
        "Final Fantasy VII",
        "Final Fantasy VII Remake",
    )
)

SEASON_SUFFIX_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Chinese
    re.compile(r"\s*第[一二三四五六七八九十\d]+季\s*$"),
    re.compile(r"\s*最终季\s*$"),
    re.compile(r"\s*续篇\s*$"),
    re.compile(r"\s*续集\s*$"),
    # Japanese
    re.compile(r"\s*シーズン\s*\d+\s*$"),
    re.compile(r"\s*第?\d+期\s*$"),
    re.compile(r"\s*セカンドシーズン\s*$"),
    re.compile(r"\s*サードシーズン\s*$"),
    # English
    re.compile(r"\s*Season\s*\d+\s*$", re.IGNORECASE),
    re.compile(r"\s*S\d+\s*$"),
    re.compile(r"\s*Part\s*\d+\s*$", re.IGNORECASE),
    re.compile(r"\s*\d+(?:st|nd|rd|th)\s+Season\s*$", re.IGNORECASE),
    re.compile(r"\s*The\s+Final\s+Season\s*$", re.IGNORECASE),
    # Roman numerals, only when separated by whitespace
    re.compile(r"\s+(?:II|III|IV|V|VI)\s*$"),
)

_YEAR_RE = re.compile(r"^(\d{4})")


def remove_season_suffix(title: str | None) -> tuple[str, bool]:
    """Strip a trailing season marker from ``title``.

    Returns the cleaned title and whether anything was removed. Titles on the
    exclusion list and results shorter than two characters are left untouched.
    """

    if not title or not title.strip():
        return title or "", False

    trimmed = title.strip()
    if trimmed.casefold() in _EXCLUDED_TITLES:
        return trimmed, False

    for pattern in SEASON_SUFFIX_PATTERNS:
        if pattern.search(trimmed):
            cleaned = pattern.sub("", trimmed).strip()
            if len(cleaned) >= 2:
                return cleaned, True

    return trimmed, False


def has_season_suffix(title: str | None) -> bool:
    """Return ``True`` when ``title`` ends with a recognised season marker."""

    if not title or not title.strip():
        return False
    trimmed = title.strip()
    if trimmed.casefold() in _EXCLUDED_TITLES:
        return False
    return any(pattern.search(trimmed) for pattern in SEASON_SUFFIX_PATTERNS)


def extract_year(value: Any) -> int | None:
    """Return the leading four-digit year of a ``YYYY-MM-DD`` style value."""

    if isinstance(value, int):
        return value if value > 0 else None
    if not isinstance(value, str):
        return None
    match = _YEAR_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(1))


def first_non_blank(*values: str | None) -> str:
    """Return the first value that is a non-empty string after stripping."""

    for value in values:
        if isinstance(value, str) and value.strip():
            return value
    return ""
