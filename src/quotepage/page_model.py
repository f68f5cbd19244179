# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Base page model: lifecycle, tab sharing, and page validation.

A model is created either fresh (``init()`` later opens a tab the model
owns) or from another ready model (``PageModel.from_model``), in which case
it borrows that model's tab. Lifecycle::

    UNINITIALIZED --init()--> READY --close()--> CLOSED

Only the owner stops the browser session behind a tab. Models sharing a tab
serialize their mutating operations through the tab's lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

from playwright.async_api import Browser, Page

from .browser_session import BrowserConfig, BrowserSession
from .errors import AlreadyInitializedError, NavigationError, NotInitializedError, PageValidationError
from .selector_catalog import SelectorCatalog, load_selectors

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound="PageModel")


class PageState(StrEnum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass(eq=False)
class Tab:
    """A browser tab shared by one owning model and any number of borrowers."""

    session: BrowserSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    closed: bool = False

    @property
    def page(self) -> Page:
        return self.session.page


class PageModel:
    """Representation of one page of the site, bound to a browser tab."""

    def __init__(
        self,
        *,
        timeout_ms: int | None = None,
        config: BrowserConfig | None = None,
        selectors: SelectorCatalog | None = None,
    ) -> None:
        self.config = config or BrowserConfig()
        self.selectors = selectors or load_selectors()
        self._timeout_ms = timeout_ms
        self._tab: Tab | None = None
        self._owns_tab = False
        self._state = PageState.UNINITIALIZED

    @classmethod
    def from_model(cls: type[_M], model: PageModel, *, timeout_ms: int | None = None) -> _M:
        """Build a model that borrows *model*'s tab.

        The new model starts READY and never closes the tab itself.
        """
        tab = model._require_tab()
        new = cls(
            timeout_ms=timeout_ms if timeout_ms is not None else model._timeout_ms,
            config=model.config,
            selectors=model.selectors,
        )
        new._tab = tab
        new._state = PageState.READY
        return new

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def state(self) -> PageState:
        return self._state

    @property
    def timeout_ms(self) -> int | None:
        return self._timeout_ms

    @property
    def owns_tab(self) -> bool:
        return self._owns_tab

    @property
    def page(self) -> Page:
        return self._require_tab().page

    def _require_tab(self) -> Tab:
        if self._state is not PageState.READY or self._tab is None or self._tab.closed:
            raise NotInitializedError(f"{self.name}: page not initialized. Call init() first.")
        return self._tab

    def _exclusive(self) -> asyncio.Lock:
        """Lock serializing mutating operations on this model's tab."""
        return self._require_tab().lock

    async def init(self, browser: Browser | None = None) -> None:
        """Open a tab this model owns.

        Launches a browser, or opens a context on *browser* when given (the
        browser then stays open after close()).
        """
        if self._state is not PageState.UNINITIALIZED:
            raise AlreadyInitializedError(f"{self.name}: cannot init a model that is {self._state.value}")

        session = BrowserSession(self.config)
        if browser is None:
            await session.start()
        else:
            await session.start_from_pool(browser)
        if self._timeout_ms:
            session.page.set_default_timeout(self._timeout_ms)

        self._tab = Tab(session)
        self._owns_tab = True
        self._state = PageState.READY
        logger.info("%s initialized with a new tab", self.name)

    async def is_in_page(self) -> bool:
        """Whether the tab currently shows the page this model represents.

        The base model has no constraint beyond being ready.
        """
        self._require_tab()
        return True

    async def validate_page(self) -> None:
        """Raise PageValidationError unless is_in_page() holds."""
        if not await self.is_in_page():
            url = self.page.url
            logger.warning("%s validation failed at %s", self.name, url)
            raise PageValidationError(f"{self.name}: not on the expected page ({url})", url=url, model=self.name)
        logger.info("%s validated", self.name)

    async def close(self) -> None:
        """Move to CLOSED; stops the tab's session only if this model owns it."""
        if self._state is PageState.CLOSED:
            return
        tab = self._tab
        self._tab = None
        self._state = PageState.CLOSED
        if tab is not None and self._owns_tab and not tab.closed:
            tab.closed = True
            await tab.session.stop()
            logger.info("%s closed its tab", self.name)
        else:
            logger.debug("%s released a borrowed tab", self.name)

    async def __aenter__(self: _M) -> _M:
        await self.init()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _goto(self, url: str, *, wait_until: str, timeout_ms: int) -> None:
        """Navigate the tab, raising NavigationError with the target URL on failure."""
        logger.info("%s navigating to %s", self.name, url)
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except Exception as exc:
            raise NavigationError(f"{self.name}: navigation to {url} failed: {exc}", url=url) from exc

    async def _race_navigation(self, action: Awaitable[Any], *, wait_until: str, timeout_ms: int) -> Any:
        """Run *action* while waiting for a navigation it may trigger.

        Both are awaited to completion. A navigation that never happens is
        tolerated, since a trigger may route without a full page load; a
        failed *action* is re-raised. Returns the action's result.
        """
        page = self.page

        async def _navigation() -> None:
            await page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame == page.main_frame,
                timeout=timeout_ms,
            )
            await page.wait_for_load_state(wait_until, timeout=timeout_ms)

        navigation, outcome = await asyncio.gather(_navigation(), action, return_exceptions=True)
        logger.debug(
            "%s navigation race: navigation=%s action=%s",
            self.name,
            "rejected" if isinstance(navigation, BaseException) else "fulfilled",
            "rejected" if isinstance(outcome, BaseException) else "fulfilled",
        )
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
