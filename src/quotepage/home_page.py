# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Home page model: landing-page recognition and quote search."""

from __future__ import annotations

import logging

from .errors import BrowserError, NavigationError, NotInitializedError
from .page_model import PageModel
from .quote_pages import QuoteSummaryModel

logger = logging.getLogger(__name__)

_URL_HAS_QUOTE_JS = "(symbol) => window.location.href.includes(`/quote/${symbol}`)"


class HomePageModel(PageModel):
    """The site's landing page, where quotes are looked up by symbol."""

    async def open(self) -> None:
        """Load the landing page in this model's tab."""
        async with self._exclusive():
            await self._goto(
                self.selectors.site.base_url,
                wait_until="domcontentloaded",
                timeout_ms=self.config.timeout_ms,
            )

    async def is_in_page(self) -> bool:
        """Title names the site and the quote lookup input is present.

        The title is checked first; the DOM is only queried when it matches.
        """
        page = self.page
        try:
            title = await page.title()
            if self.selectors.site.name not in title:
                logger.debug("%s: title %r lacks %r", self.name, title, self.selectors.site.name)
                return False
            lookup = await page.query_selector(self.selectors.home.quote_lookup_input)
        except Exception as exc:
            raise BrowserError(f"Failed to validate {self.selectors.site.name} home page: {exc}") from exc
        logger.debug("%s: quote lookup found=%s", self.name, lookup is not None)
        return lookup is not None

    async def go_to_quote(self, symbol: str) -> QuoteSummaryModel:
        """Search *symbol* and land on its quote summary page.

        Returns a summary model sharing this tab; call validate_page() on it.

        Raises:
            ValueError: *symbol* is empty.
            NavigationError: The search did not reach ``/quote/<SYMBOL>``.
        """
        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("Stock symbol must be a non-empty string")
        symbol = symbol.strip().upper()
        cfg = self.config
        lookup_selector = self.selectors.home.quote_lookup_input

        async with self._exclusive():
            page = self.page
            logger.info("%s: searching quote %s", self.name, symbol)
            try:
                lookup = await page.wait_for_selector(lookup_selector, timeout=cfg.widget_timeout_ms)
                if lookup is None:
                    raise BrowserError("Quote lookup input not found")
                await lookup.click(click_count=3)
                await lookup.type(symbol)
                await self._race_navigation(
                    page.keyboard.press("Enter"),
                    wait_until="networkidle",
                    timeout_ms=cfg.widget_timeout_ms,
                )
                await page.wait_for_function(_URL_HAS_QUOTE_JS, arg=symbol, timeout=cfg.search_timeout_ms)
            except NotInitializedError:
                raise
            except Exception as exc:
                raise NavigationError(
                    f"Failed to navigate to quote for symbol {symbol}: {exc}",
                    url=page.url,
                ) from exc

            final_url = page.url
            if f"/quote/{symbol}" not in final_url:
                raise NavigationError(f"Failed to navigate to quote page for symbol: {symbol}", url=final_url)
            logger.info("%s: reached %s", self.name, final_url)

        return QuoteSummaryModel.from_model(self)
