# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""URL recognition for the closed set of page kinds quotepage models.

Each quote subpage kind owns exactly one URL pattern; the home page is
recognised by title and markup instead (see ``home_page``), so it has no
URL pattern here.
"""

from __future__ import annotations

import re
from enum import StrEnum


class PageKind(StrEnum):
    HOME = "home"
    SUMMARY = "summary"
    NEWS = "news"
    CHART = "chart"
    HISTORY = "history"


SUBPAGE_KINDS: tuple[PageKind, ...] = (
    PageKind.SUMMARY,
    PageKind.NEWS,
    PageKind.CHART,
    PageKind.HISTORY,
)

_QUOTE_ROOT = r"^https://finance\.yahoo\.com/quote/[^/?#]+"
_TAIL = r"/?(?:[?#].*)?$"

URL_PATTERNS: dict[PageKind, re.Pattern[str]] = {
    PageKind.SUMMARY: re.compile(_QUOTE_ROOT + _TAIL),
    PageKind.NEWS: re.compile(_QUOTE_ROOT + r"/news" + _TAIL),
    PageKind.CHART: re.compile(_QUOTE_ROOT + r"/chart" + _TAIL),
    PageKind.HISTORY: re.compile(_QUOTE_ROOT + r"/history" + _TAIL),
}

# Known sub-resource suffixes, each listed once.
SUBPAGE_SUFFIXES: tuple[str, ...] = ("news", "chart", "history")


def as_subpage_kind(kind: PageKind | str) -> PageKind:
    """Coerce *kind* to a subpage PageKind, rejecting home and unknown names."""
    try:
        resolved = PageKind(kind)
    except ValueError:
        raise ValueError(f"Unknown page kind: {kind!r}") from None
    if resolved not in SUBPAGE_KINDS:
        raise ValueError(f"{resolved.value!r} is not a quote subpage")
    return resolved


def matches(kind: PageKind, url: str) -> bool:
    """True if *url* is a page of the given subpage kind."""
    return URL_PATTERNS[as_subpage_kind(kind)].match(url) is not None


def classify_url(url: str) -> PageKind | None:
    """Return the subpage kind *url* belongs to, or None."""
    for kind in SUBPAGE_KINDS:
        if URL_PATTERNS[kind].match(url):
            return kind
    return None
