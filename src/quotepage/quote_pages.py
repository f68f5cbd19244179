# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Quote subpage models: summary, news, chart, and historical data.

Every subpage shares the quote-lookup marker and differs only in its URL
pattern. Moving between siblings is a pure URL rewrite of the current
address followed by one navigation; the returned sibling borrows the same
tab and is not validated yet.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import ClassVar
from urllib.parse import urlsplit, urlunsplit

from . import Frequency, HistoricalDataRecord
from .errors import BrowserError, ConfigurationError, InvalidFrequencyError
from .history_table import extract_table
from .page_classifier import SUBPAGE_SUFFIXES, URL_PATTERNS, PageKind, as_subpage_kind
from .page_model import PageModel

logger = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(r"/(?:" + "|".join(SUBPAGE_SUFFIXES) + r")/?$")


def subpage_url(current_url: str, kind: PageKind | str) -> str:
    """Rewrite *current_url* to the sibling subpage of the given kind.

    The known suffix (and one trailing slash) is stripped to get the quote's
    base URL; summary appends ``/``, every other kind appends ``/<kind>``.
    Query and fragment are dropped.

    >>> subpage_url("https://finance.yahoo.com/quote/AAPL/news", "history")
    'https://finance.yahoo.com/quote/AAPL/history'
    """
    kind = as_subpage_kind(kind)
    parts = urlsplit(current_url)
    base_path = _SUFFIX_RE.sub("", parts.path)
    if base_path.endswith("/"):
        base_path = base_path[:-1]
    target_path = base_path + "/" if kind is PageKind.SUMMARY else f"{base_path}/{kind.value}"
    return urlunsplit((parts.scheme, parts.netloc, target_path, "", ""))


class ErrorPolicy(StrEnum):
    """How a configuration sequence treats a failing step."""

    STRICT = "strict"  # raise ConfigurationError
    BEST_EFFORT = "best_effort"  # log, report skipped, carry on


@dataclass(frozen=True, slots=True)
class ConfigurationResult:
    """Outcome of a UI configuration sequence."""

    applied: bool
    step: str = ""  # step that failed, when not applied
    reason: str = ""

    @classmethod
    def ok(cls) -> ConfigurationResult:
        return cls(applied=True)


class QuoteSubPageModel(PageModel):
    """Common base of all quote subpages."""

    kind: ClassVar[PageKind]

    @property
    def url_pattern(self) -> re.Pattern[str]:
        return URL_PATTERNS[self.kind]

    async def _has_element(self, selector: str) -> bool:
        try:
            return await self.page.query_selector(selector) is not None
        except Exception as exc:
            raise BrowserError(f"{self.name}: failed to look up {selector!r}: {exc}") from exc

    async def is_in_page(self) -> bool:
        page = self.page
        if not await self._has_element(self.selectors.quote.quote_lookup_input):
            logger.debug("%s: quote lookup marker absent", self.name)
            return False

        url = page.url
        valid = self.url_pattern.match(url) is not None
        logger.debug("%s: url=%s pattern=%s valid=%s", self.name, url, self.url_pattern.pattern, valid)
        return valid

    async def open_subpage(self, kind: PageKind | str) -> QuoteSubPageModel:
        """Navigate to the sibling subpage and return its (unvalidated) model."""
        kind = as_subpage_kind(kind)
        target = subpage_url(self.page.url, kind)
        async with self._exclusive():
            await self._goto(
                target,
                wait_until="domcontentloaded",
                timeout_ms=self.config.navigation_timeout_ms,
            )
        return SUBPAGE_MODELS[kind].from_model(self)

    async def open_summary(self) -> QuoteSummaryModel:
        return await self.open_subpage(PageKind.SUMMARY)

    async def open_news(self) -> QuoteNewsModel:
        return await self.open_subpage(PageKind.NEWS)

    async def open_charts(self) -> QuoteChartsModel:
        return await self.open_subpage(PageKind.CHART)

    async def open_historical_data(self) -> HistoricalDataModel:
        return await self.open_subpage(PageKind.HISTORY)


class QuoteSummaryModel(QuoteSubPageModel):
    kind = PageKind.SUMMARY


class QuoteNewsModel(QuoteSubPageModel):
    kind = PageKind.NEWS


class QuoteChartsModel(QuoteSubPageModel):
    kind = PageKind.CHART


def format_picker_date(value: date) -> str:
    """Format a date the way the range picker's text inputs expect (dd-mm-yyyy)."""
    return f"{value.day:02d}-{value.month:02d}-{value.year:04d}"


def resolve_frequency(frequency: Frequency | str) -> Frequency:
    try:
        return Frequency(frequency)
    except ValueError:
        allowed = ", ".join(f.value for f in Frequency)
        raise InvalidFrequencyError(f"Invalid frequency {frequency!r}; expected one of {allowed}") from None


class HistoricalDataModel(QuoteSubPageModel):
    """Historical prices subpage: period/frequency controls and the price table."""

    kind = PageKind.HISTORY

    async def is_in_page(self) -> bool:
        if not await super().is_in_page():
            return False
        return await self._has_element(self.selectors.historical.data_table)

    async def _run_sequence(
        self,
        name: str,
        steps: Callable[[list[str]], Awaitable[None]],
        policy: ErrorPolicy,
    ) -> ConfigurationResult:
        """Run a scripted UI sequence under *policy*.

        *steps* appends each step name to the list it is given before
        performing it, so a failure can be attributed to its step.
        """
        lock = self._exclusive()  # NotInitializedError is fatal under every policy
        trail: list[str] = []
        try:
            async with lock:
                await steps(trail)
        except Exception as exc:
            step = trail[-1] if trail else ""
            if policy is ErrorPolicy.STRICT:
                logger.error("%s: %s failed at step %r: %s", self.name, name, step, exc)
                raise ConfigurationError(f"{self.name}: {name} failed at {step!r}: {exc}", step=step) from exc
            logger.warning("%s: %s skipped after step %r failed", self.name, name, step, exc_info=True)
            return ConfigurationResult(applied=False, step=step, reason=str(exc))
        logger.info("%s: %s applied", self.name, name)
        return ConfigurationResult.ok()

    async def configure_period(
        self,
        start: date,
        end: date,
        *,
        policy: ErrorPolicy = ErrorPolicy.BEST_EFFORT,
    ) -> ConfigurationResult:
        """Set the table's date range through the range picker.

        Best effort by default: the picker is the least stable part of the
        page, so a failure leaves the page's previous range in place and is
        reported in the result instead of raised.
        """
        if start > end:
            reason = f"start {start.isoformat()} is after end {end.isoformat()}"
            if policy is ErrorPolicy.STRICT:
                raise ConfigurationError(f"{self.name}: {reason}", step="validate")
            logger.warning("%s: period not configured, %s", self.name, reason)
            return ConfigurationResult(applied=False, step="validate", reason=reason)

        sel = self.selectors.historical
        cfg = self.config
        start_text, end_text = format_picker_date(start), format_picker_date(end)
        logger.info("%s: configuring period %s .. %s", self.name, start_text, end_text)

        async def steps(trail: list[str]) -> None:
            page = self.page
            trail.append("open picker")
            await page.click(sel.date_range_button)
            trail.append("wait picker")
            await page.wait_for_selector(sel.date_picker_panel, state="visible", timeout=cfg.widget_timeout_ms)
            trail.append("start date")
            await page.click(sel.start_date_input, click_count=3)
            await page.type(sel.start_date_input, start_text)
            trail.append("end date")
            await page.click(sel.end_date_input, click_count=3)
            await page.type(sel.end_date_input, end_text)
            trail.append("wait done")
            await page.wait_for_selector(sel.done_button, timeout=cfg.widget_timeout_ms)
            trail.append("confirm")
            await self._race_navigation(
                page.click(sel.done_button),
                wait_until="networkidle",
                timeout_ms=cfg.widget_timeout_ms,
            )
            trail.append("settle")
            await page.wait_for_timeout(cfg.settle_ms)

        return await self._run_sequence("period configuration", steps, policy)

    async def configure_frequency(
        self,
        frequency: Frequency | str,
        *,
        policy: ErrorPolicy = ErrorPolicy.STRICT,
    ) -> ConfigurationResult:
        """Pick Daily/Weekly/Monthly in the interval dropdown.

        Strict by default: the frequency decides what the table holds, so a
        silent failure would corrupt the extracted data.

        Raises:
            InvalidFrequencyError: *frequency* is not offered (before any UI action).
            ConfigurationError: A step failed under the strict policy.
        """
        code = resolve_frequency(frequency).interval_code
        sel = self.selectors.historical
        logger.info("%s: configuring frequency %s (%s)", self.name, frequency, code)

        async def steps(trail: list[str]) -> None:
            page = self.page
            trail.append("open dropdown")
            await page.wait_for_selector(sel.frequency_button, timeout=self.config.widget_timeout_ms)
            await page.click(sel.frequency_button)
            trail.append("wait listbox")
            await page.wait_for_selector(
                sel.frequency_listbox, state="visible", timeout=self.config.widget_timeout_ms
            )
            trail.append("select option")
            await page.click(sel.frequency_option_for(code))

        return await self._run_sequence("frequency configuration", steps, policy)

    async def extract_historical_data(self, *, dayfirst: bool = False) -> list[HistoricalDataRecord]:
        """Read the price table into records, in on-screen row order."""
        sel = self.selectors.historical
        timeout_ms = self._timeout_ms or self.config.table_timeout_ms
        async with self._exclusive():
            return await extract_table(
                self.page,
                table_selector=sel.data_table,
                row_selector=sel.table_rows,
                cell_selector=sel.table_cells,
                timeout_ms=timeout_ms,
                dayfirst=dayfirst,
            )


SUBPAGE_MODELS: dict[PageKind, type[QuoteSubPageModel]] = {
    PageKind.SUMMARY: QuoteSummaryModel,
    PageKind.NEWS: QuoteNewsModel,
    PageKind.CHART: QuoteChartsModel,
    PageKind.HISTORY: HistoricalDataModel,
}
