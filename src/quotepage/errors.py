# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""quotepage exception hierarchy.

All quotepage errors inherit from QuotePageError, allowing callers
to catch the base class for any failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class QuotePageError(Exception):
    """Base exception for all quotepage errors."""


class BrowserError(QuotePageError):
    """Browser session launch or interaction failure."""


class NotInitializedError(QuotePageError):
    """Page handle accessed before init() or after close()."""


class AlreadyInitializedError(QuotePageError):
    """init() called on a model that is ready or closed."""


class PageValidationError(QuotePageError):
    """The browser is not on the page a model represents."""

    def __init__(self, message: str, *, url: str = "", model: str = "") -> None:
        super().__init__(message)
        self.url = url
        self.model = model


class NavigationError(QuotePageError):
    """A navigation did not reach its target."""

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class ExtractionError(QuotePageError):
    """The data table could not be read at all."""


class ConfigurationError(QuotePageError):
    """A strict UI configuration sequence failed."""

    def __init__(self, message: str, *, step: str = "") -> None:
        super().__init__(message)
        self.step = step


class InvalidFrequencyError(ConfigurationError, ValueError):
    """Frequency is not one the page offers."""


class SelectorCatalogError(QuotePageError):
    """Selector catalog missing, unreadable, or malformed."""
