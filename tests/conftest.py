# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures.

Playwright objects are replaced by MagicMock/AsyncMock fakes (see
``tests/_fakes.py``); no test launches a real browser.
"""

try:
    import quotepage  # noqa: F401
except ImportError:
    raise ImportError("quotepage is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from tests._fakes import fake_page


@pytest.fixture(autouse=True)
def _block_real_browser(monkeypatch):
    """Safety net: a test that forgets to fake the session gets a clear error
    instead of silently trying to launch Chromium."""

    def _no_real_playwright():
        raise RuntimeError("Test tried to launch a real browser. Fake BrowserSession.start in your test.")

    monkeypatch.setattr("quotepage.browser_session.async_playwright", _no_real_playwright)


@pytest.fixture
def page():
    return fake_page()
