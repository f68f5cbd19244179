# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for quote subpage validation, sibling navigation, and historical controls."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, PropertyMock, call

import pytest
from hypothesis import given
from hypothesis import strategies as st

from quotepage import Frequency
from quotepage.errors import (
    ConfigurationError,
    ExtractionError,
    InvalidFrequencyError,
    NavigationError,
    NotInitializedError,
    PageValidationError,
)
from quotepage.page_classifier import SUBPAGE_KINDS, PageKind, classify_url
from quotepage.page_model import PageModel
from quotepage.quote_pages import (
    ConfigurationResult,
    ErrorPolicy,
    HistoricalDataModel,
    QuoteChartsModel,
    QuoteNewsModel,
    QuoteSummaryModel,
    format_picker_date,
    resolve_frequency,
    subpage_url,
)
from tests._fakes import DATA_ROW, HISTORY_URL, NEWS_URL, QUOTE_URL, attach, fake_page, fake_row

# ── subpage_url ────────────────────────────────────────────────────


class TestSubpageUrl:
    @pytest.mark.parametrize(
        ("current", "kind", "expected"),
        [
            (
                "https://finance.yahoo.com/quote/AAPL/news",
                "history",
                "https://finance.yahoo.com/quote/AAPL/history",
            ),
            ("https://finance.yahoo.com/quote/AAPL", "chart", "https://finance.yahoo.com/quote/AAPL/chart"),
            ("https://finance.yahoo.com/quote/AAPL/history/", "summary", "https://finance.yahoo.com/quote/AAPL/"),
            ("https://finance.yahoo.com/quote/AAPL/", "news", "https://finance.yahoo.com/quote/AAPL/news"),
            ("https://finance.yahoo.com/quote/AAPL/chart", "chart", "https://finance.yahoo.com/quote/AAPL/chart"),
        ],
    )
    def test_rewrites(self, current, kind, expected):
        assert subpage_url(current, kind) == expected

    def test_query_and_fragment_dropped(self):
        url = "https://finance.yahoo.com/quote/AAPL/history/?period1=1&period2=2#top"
        assert subpage_url(url, PageKind.NEWS) == "https://finance.yahoo.com/quote/AAPL/news"

    def test_ticker_with_dot(self):
        assert subpage_url("https://finance.yahoo.com/quote/BRK.B/", "history") == (
            "https://finance.yahoo.com/quote/BRK.B/history"
        )

    def test_home_is_not_a_subpage(self):
        with pytest.raises(ValueError, match="not a quote subpage"):
            subpage_url(QUOTE_URL, PageKind.HOME)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown page kind"):
            subpage_url(QUOTE_URL, "profile")

    @given(
        ticker=st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789.^=-", min_size=1, max_size=12),
        start=st.sampled_from(["", "/", "/news", "/chart/", "/history", "/history/?frequency=1wk"]),
        kind=st.sampled_from(SUBPAGE_KINDS),
    )
    def test_rewrite_lands_on_requested_kind(self, ticker, start, kind):
        url = subpage_url(f"https://finance.yahoo.com/quote/{ticker}{start}", kind)
        assert classify_url(url) is kind
        assert f"/quote/{ticker}/" in url + "/"


# ── Validation ─────────────────────────────────────────────────────


class TestIsInPage:
    async def test_marker_and_pattern(self):
        page = fake_page(url=NEWS_URL)
        assert await attach(QuoteNewsModel(), page).is_in_page() is True

    async def test_wrong_subpage(self):
        page = fake_page(url=NEWS_URL)
        assert await attach(QuoteChartsModel(), page).is_in_page() is False

    async def test_summary_rejects_subpage_url(self):
        page = fake_page(url=NEWS_URL)
        assert await attach(QuoteSummaryModel(), page).is_in_page() is False

    async def test_summary_accepts_query_string(self):
        page = fake_page(url="https://finance.yahoo.com/quote/AAPL/?p=AAPL")
        assert await attach(QuoteSummaryModel(), page).is_in_page() is True

    async def test_marker_absent_short_circuits_url_check(self):
        page = fake_page(url=NEWS_URL)
        page.query_selector = AsyncMock(return_value=None)
        url = PropertyMock(return_value=NEWS_URL)
        type(page).url = url
        model = attach(QuoteNewsModel(), page)
        assert await model.is_in_page() is False
        url.assert_not_called()

    async def test_marker_lookup_uses_quote_selector(self):
        page = fake_page(url=QUOTE_URL)
        model = attach(QuoteSummaryModel(), page)
        await model.is_in_page()
        page.query_selector.assert_awaited_once_with(model.selectors.quote.quote_lookup_input)

    async def test_validate_raises_on_mismatch(self):
        page = fake_page(url=QUOTE_URL)
        with pytest.raises(PageValidationError) as info:
            await attach(HistoricalDataModel(), page).validate_page()
        assert info.value.model == "HistoricalDataModel"
        assert info.value.url == QUOTE_URL

    async def test_historical_requires_table(self):
        page = fake_page(url=HISTORY_URL)
        model = attach(HistoricalDataModel(), page)
        table = model.selectors.historical.data_table

        async def query_selector(selector):
            return None if selector == table else object()

        page.query_selector = AsyncMock(side_effect=query_selector)
        assert await model.is_in_page() is False

    async def test_historical_with_table(self):
        page = fake_page(url=HISTORY_URL)
        assert await attach(HistoricalDataModel(), page).is_in_page() is True

    async def test_requires_init(self):
        with pytest.raises(NotInitializedError):
            await QuoteSummaryModel().is_in_page()


# ── Sibling navigation ─────────────────────────────────────────────


class TestOpenSubpage:
    async def test_open_historical_data(self):
        page = fake_page(url=NEWS_URL)
        news = attach(QuoteNewsModel(), page)
        history = await news.open_historical_data()

        page.goto.assert_awaited_once_with(
            "https://finance.yahoo.com/quote/AAPL/history",
            wait_until="domcontentloaded",
            timeout=news.config.navigation_timeout_ms,
        )
        assert isinstance(history, HistoricalDataModel)
        assert history.page is page
        assert history.owns_tab is False

    @pytest.mark.parametrize(
        ("opener", "model_cls", "suffix"),
        [
            ("open_summary", QuoteSummaryModel, "/"),
            ("open_news", QuoteNewsModel, "/news"),
            ("open_charts", QuoteChartsModel, "/chart"),
            ("open_historical_data", HistoricalDataModel, "/history"),
        ],
    )
    async def test_each_opener(self, opener, model_cls, suffix):
        page = fake_page(url=HISTORY_URL)
        model = attach(QuoteSummaryModel(), page)
        sibling = await getattr(model, opener)()
        assert type(sibling) is model_cls
        assert page.url == "https://finance.yahoo.com/quote/AAPL" + suffix

    async def test_returned_model_is_not_validated(self):
        page = fake_page(url=QUOTE_URL)
        model = attach(QuoteSummaryModel(), page)
        await model.open_news()
        page.query_selector.assert_not_awaited()

    async def test_open_subpage_by_name(self):
        page = fake_page(url=QUOTE_URL)
        sibling = await attach(QuoteSummaryModel(), page).open_subpage("chart")
        assert isinstance(sibling, QuoteChartsModel)

    async def test_navigation_failure(self):
        page = fake_page(url=QUOTE_URL)
        page.goto = AsyncMock(side_effect=TimeoutError("Timeout 15000ms exceeded"))
        with pytest.raises(NavigationError) as info:
            await attach(QuoteSummaryModel(), page).open_news()
        assert info.value.url == "https://finance.yahoo.com/quote/AAPL/news"

    async def test_sibling_survives_opener_close(self):
        page = fake_page(url=QUOTE_URL)
        owner = attach(PageModel(), page)
        summary = QuoteSummaryModel.from_model(owner)
        news = await summary.open_news()
        await summary.close()
        assert news.page is page


# ── Period configuration ───────────────────────────────────────────


def _history(page=None):
    return attach(HistoricalDataModel(), page or fake_page(url=HISTORY_URL))


class TestFormatPickerDate:
    def test_day_month_year(self):
        assert format_picker_date(date(2025, 1, 5)) == "05-01-2025"


class TestConfigurePeriod:
    async def test_types_dates_in_picker_format(self):
        model = _history()
        page = model.page
        result = await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))

        assert result == ConfigurationResult.ok()
        sel = model.selectors.historical
        page.type.assert_has_awaits([call(sel.start_date_input, "01-01-2025"), call(sel.end_date_input, "30-06-2025")])
        page.click.assert_any_await(sel.start_date_input, click_count=3)
        page.click.assert_any_await(sel.end_date_input, click_count=3)

    async def test_step_order(self):
        model = _history()
        page = model.page
        await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))
        sel = model.selectors.historical
        clicked = [c.args[0] for c in page.click.await_args_list]
        assert clicked == [sel.date_range_button, sel.start_date_input, sel.end_date_input, sel.done_button]
        page.wait_for_timeout.assert_awaited_once_with(model.config.settle_ms)

    @staticmethod
    def _failing_confirm(model):
        done = model.selectors.historical.done_button

        async def click(selector, **kwargs):
            if selector == done:
                raise RuntimeError("Element is not attached to the DOM")

        model.page.click = AsyncMock(side_effect=click)

    async def test_failed_confirm_strict_raises(self):
        model = _history()
        self._failing_confirm(model)
        with pytest.raises(ConfigurationError) as info:
            await model.configure_period(date(2025, 1, 1), date(2025, 6, 30), policy=ErrorPolicy.STRICT)
        assert info.value.step == "confirm"
        assert isinstance(info.value.__cause__, RuntimeError)
        model.page.wait_for_timeout.assert_not_awaited()

    async def test_failed_confirm_best_effort_not_applied(self):
        model = _history()
        self._failing_confirm(model)
        result = await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))
        assert result.applied is False
        assert result.step == "confirm"
        assert "not attached" in result.reason

    async def test_confirm_without_navigation_still_applies(self):
        model = _history()
        model.page.wait_for_event = AsyncMock(side_effect=TimeoutError("no navigation"))
        result = await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))
        assert result.applied is True

    async def test_best_effort_swallows_step_failure(self):
        model = _history()
        model.page.wait_for_selector = AsyncMock(side_effect=TimeoutError("picker never opened"))
        result = await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))
        assert result.applied is False
        assert result.step == "wait picker"
        assert "picker never opened" in result.reason

    async def test_best_effort_logs_warning(self, caplog):
        model = _history()
        model.page.click = AsyncMock(side_effect=RuntimeError("detached"))
        with caplog.at_level("WARNING", logger="quotepage.quote_pages"):
            await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))
        assert "skipped" in caplog.text

    async def test_strict_raises_with_step(self):
        model = _history()
        model.page.click = AsyncMock(side_effect=RuntimeError("detached"))
        with pytest.raises(ConfigurationError) as info:
            await model.configure_period(date(2025, 1, 1), date(2025, 6, 30), policy=ErrorPolicy.STRICT)
        assert info.value.step == "open picker"

    async def test_start_after_end_skipped(self):
        model = _history()
        result = await model.configure_period(date(2025, 6, 30), date(2025, 1, 1))
        assert result.applied is False
        assert result.step == "validate"
        model.page.click.assert_not_awaited()

    async def test_start_after_end_strict(self):
        model = _history()
        with pytest.raises(ConfigurationError, match="after end"):
            await model.configure_period(date(2025, 6, 30), date(2025, 1, 1), policy=ErrorPolicy.STRICT)

    async def test_same_day_range(self):
        model = _history()
        result = await model.configure_period(date(2025, 3, 3), date(2025, 3, 3))
        assert result.applied is True

    async def test_not_initialized_is_fatal_even_best_effort(self):
        with pytest.raises(NotInitializedError):
            await HistoricalDataModel().configure_period(date(2025, 1, 1), date(2025, 6, 30))

    async def test_lock_released_after_failure(self):
        model = _history()
        model.page.click = AsyncMock(side_effect=RuntimeError("detached"))
        await model.configure_period(date(2025, 1, 1), date(2025, 6, 30))
        assert not model._exclusive().locked()


# ── Frequency configuration ────────────────────────────────────────


class TestResolveFrequency:
    def test_accepts_enum_and_label(self):
        assert resolve_frequency("Weekly") is Frequency.WEEKLY
        assert resolve_frequency(Frequency.MONTHLY) is Frequency.MONTHLY

    def test_rejects_unknown(self):
        with pytest.raises(InvalidFrequencyError, match="Daily, Weekly, Monthly"):
            resolve_frequency("Hourly")

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            resolve_frequency("weekly")


class TestConfigureFrequency:
    @pytest.mark.parametrize(("frequency", "code"), [("Daily", "1d"), ("Weekly", "1wk"), ("Monthly", "1mo")])
    async def test_selects_option_by_code(self, frequency, code):
        model = _history()
        result = await model.configure_frequency(frequency)
        assert result.applied is True
        model.page.click.assert_awaited_with(f'div[data-value="{code}"]')

    async def test_opens_dropdown_then_waits_listbox(self):
        model = _history()
        await model.configure_frequency(Frequency.WEEKLY)
        sel = model.selectors.historical
        waited = [c.args[0] for c in model.page.wait_for_selector.await_args_list]
        assert waited == [sel.frequency_button, sel.frequency_listbox]
        assert model.page.click.await_args_list[0] == call(sel.frequency_button)

    async def test_invalid_frequency_before_any_action(self):
        model = _history()
        with pytest.raises(InvalidFrequencyError):
            await model.configure_frequency("Yearly")
        model.page.click.assert_not_awaited()
        model.page.wait_for_selector.assert_not_awaited()

    async def test_invalid_frequency_raises_under_best_effort(self):
        with pytest.raises(InvalidFrequencyError):
            await _history().configure_frequency("Yearly", policy=ErrorPolicy.BEST_EFFORT)

    async def test_step_failure_is_configuration_error(self):
        model = _history()
        model.page.wait_for_selector = AsyncMock(side_effect=TimeoutError("Timeout 10000ms exceeded"))
        with pytest.raises(ConfigurationError) as info:
            await model.configure_frequency("Weekly")
        assert info.value.step == "open dropdown"
        assert isinstance(info.value.__cause__, TimeoutError)

    async def test_best_effort_reports_failure(self):
        model = _history()
        model.page.click = AsyncMock(side_effect=RuntimeError("detached"))
        result = await model.configure_frequency("Weekly", policy=ErrorPolicy.BEST_EFFORT)
        assert result.applied is False
        assert result.step == "open dropdown"


# ── Extraction ─────────────────────────────────────────────────────


class TestExtractHistoricalData:
    async def test_reads_rows(self):
        model = _history()
        model.page.query_selector_all = AsyncMock(return_value=[fake_row(DATA_ROW)])
        records = await model.extract_historical_data()
        assert [r.close for r in records] == [150.75]

    async def test_uses_catalog_selectors_and_table_timeout(self):
        model = _history()
        await model.extract_historical_data()
        sel = model.selectors.historical
        model.page.wait_for_selector.assert_awaited_once_with(sel.data_table, timeout=model.config.table_timeout_ms)
        model.page.query_selector_all.assert_awaited_once_with(sel.table_rows)

    async def test_model_timeout_overrides_table_timeout(self):
        model = attach(HistoricalDataModel(timeout_ms=5000), fake_page(url=HISTORY_URL))
        await model.extract_historical_data()
        assert model.page.wait_for_selector.await_args.kwargs["timeout"] == 5000

    async def test_missing_table(self):
        model = _history()
        model.page.wait_for_selector = AsyncMock(side_effect=TimeoutError("Timeout"))
        with pytest.raises(ExtractionError):
            await model.extract_historical_data()
