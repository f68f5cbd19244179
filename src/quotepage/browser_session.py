# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright browser session management for quotepage.

Owns the Chromium lifecycle behind one tab. A session either launches its
own browser (standalone) or opens a context on a browser it does not own
(pool mode), in which case stop() leaves the browser running.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from contextlib import suppress
from dataclasses import dataclass, replace

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from .errors import BrowserError

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

_ENV_PREFIX = "QUOTEPAGE_"


@dataclass(frozen=True)
class BrowserConfig:
    """Browser launch configuration and per-operation wait budgets."""

    headless: bool = False
    locale: str = DEFAULT_LOCALE
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = DEFAULT_USER_AGENT
    slow_mo_ms: int = 0
    devtools: bool = False
    timeout_ms: int = 30000  # page default timeout
    navigation_timeout_ms: int = 15000  # subpage goto
    search_timeout_ms: int = 15000  # quote search URL change
    widget_timeout_ms: int = 10000  # pickers, dropdowns, confirm navigation race
    settle_ms: int = 2000  # pause after confirming a date range
    table_timeout_ms: int = 30000  # historical table presence

    @classmethod
    def preset(cls, name: str) -> BrowserConfig:
        """Return one of the named launch presets: default, headless, debug."""
        try:
            return _PRESETS[name]
        except KeyError:
            raise ValueError(f"Unknown browser preset {name!r}; expected one of {sorted(_PRESETS)}") from None

    @classmethod
    def from_env(cls, base: BrowserConfig | None = None) -> BrowserConfig:
        """Apply ``QUOTEPAGE_*`` environment overrides on top of *base*."""
        cfg = base or cls()
        overrides: dict[str, object] = {}

        headless = os.environ.get(f"{_ENV_PREFIX}HEADLESS", "").strip().lower()
        if headless:
            overrides["headless"] = headless in ("1", "true", "yes")
        locale = os.environ.get(f"{_ENV_PREFIX}LOCALE", "").strip()
        if locale:
            overrides["locale"] = locale

        for field_name in ("timeout_ms", "navigation_timeout_ms", "table_timeout_ms", "slow_mo_ms"):
            var = f"{_ENV_PREFIX}{field_name.upper()}"
            raw = os.environ.get(var, "").strip()
            if not raw:
                continue
            try:
                overrides[field_name] = int(raw)
            except ValueError:
                raise ValueError(f"{var} must be an integer, got {raw!r}") from None

        return replace(cfg, **overrides) if overrides else cfg


_PRESETS: dict[str, BrowserConfig] = {
    "default": BrowserConfig(),
    "headless": BrowserConfig(headless=True),
    "debug": BrowserConfig(headless=False, devtools=True, slow_mo_ms=100),
}


# ── Chromium auto-install ─────────────────────────────────────────

_chromium_install_attempted = False
_AUTO_INSTALL_TIMEOUT = 300  # seconds
_INSTALL_COMMAND = (sys.executable, "-m", "playwright", "install", "chromium")


async def _auto_install_chromium() -> bool:
    """Install the Chromium build Playwright expects; at most one attempt per process."""
    global _chromium_install_attempted  # noqa: PLW0603
    if _chromium_install_attempted:
        return False
    _chromium_install_attempted = True

    logger.info("Installing Chromium for Playwright")
    try:
        proc = await asyncio.create_subprocess_exec(
            *_INSTALL_COMMAND,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=_AUTO_INSTALL_TIMEOUT)
    except TimeoutError:
        logger.warning("Chromium install gave up after %ds", _AUTO_INSTALL_TIMEOUT)
        return False
    except OSError:
        logger.warning("Chromium auto-install could not start", exc_info=True)
        return False

    if proc.returncode == 0:
        logger.info("Chromium installed")
        return True
    logger.warning("Chromium install exited with %d: %s", proc.returncode, stderr.decode(errors="replace")[-500:])
    return False


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    """Return the Chromium command-line flags for *config*."""
    args = [
        "--disable-blink-features=AutomationControlled",
        f"--lang={config.locale}",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--no-first-run",
        "--no-zygote",
        "--disable-gpu",
    ]
    if config.devtools:
        args.append("--auto-open-devtools-for-tabs")
    return args


class BrowserSession:
    """One Playwright tab plus the browser machinery behind it."""

    def __init__(self, config: BrowserConfig | None = None):
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._owns_browser = True

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserError("Browser session not started. Use async with or call start().")
        return self._page

    @property
    def owns_browser(self) -> bool:
        return self._owns_browser

    @property
    def is_started(self) -> bool:
        return self._page is not None

    async def _launch_browser(self) -> None:
        """Launch Chromium for a standalone session."""
        kwargs = {
            "headless": self.config.headless,
            "args": chromium_launch_args(self.config),
            "slow_mo": self.config.slow_mo_ms or None,
        }
        try:
            self._browser = await self._playwright.chromium.launch(**kwargs)
        except Exception as exc:
            if "executable doesn't exist" not in str(exc).lower():
                raise BrowserError(f"Chromium launch failed: {exc}") from exc
            if not await _auto_install_chromium():
                raise BrowserError(
                    "No Chromium build found and installing one failed; run: playwright install chromium"
                ) from exc
            try:
                self._browser = await self._playwright.chromium.launch(**kwargs)
            except Exception as retry_exc:
                raise BrowserError(f"Chromium launch failed after install: {retry_exc}") from retry_exc

    async def _create_context(self, browser: Browser) -> None:
        """Open an isolated context on *browser* and its single tab."""
        self._context = await browser.new_context(
            viewport={
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            locale=self.config.locale,
            user_agent=self.config.user_agent,
            accept_downloads=False,
        )
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.config.timeout_ms)

    async def start(self) -> None:
        """Launch browser and create the tab."""
        self._playwright = await async_playwright().start()
        try:
            await self._launch_browser()
            await self._create_context(self._browser)
        except Exception as exc:
            await self.stop()
            if isinstance(exc, BrowserError):
                raise
            raise BrowserError(f"Browser session failed to start: {exc}") from exc
        logger.info("Launched Chromium (headless=%s, locale=%s)", self.config.headless, self.config.locale)

    async def start_from_pool(self, browser: Browser) -> None:
        """Start the session on a browser owned by someone else.

        stop() will only close this session's context, not the browser.
        """
        self._owns_browser = False
        self._browser = browser
        try:
            await self._create_context(browser)
        except Exception as exc:
            await self.stop()
            raise BrowserError(f"Browser session failed to open a tab on the shared browser: {exc}") from exc
        logger.info("Browser session started on shared browser (headless=%s)", self.config.headless)

    async def stop(self) -> None:
        """Close the tab and, when owned, the browser. Safe on a crashed browser."""
        if self._context:
            with suppress(Exception):
                await self._context.close()
            self._context = None
        self._page = None

        if self._owns_browser:
            if self._browser:
                with suppress(Exception):
                    await self._browser.close()
                self._browser = None
            if self._playwright:
                with suppress(Exception):
                    await self._playwright.stop()
                self._playwright = None
        else:
            self._browser = None

        logger.info("Tab closed%s", " with its browser" if self._owns_browser else "")

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

