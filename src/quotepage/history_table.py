# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Historical prices table -> HistoricalDataRecord list.

Row shape is the only filter: data rows have exactly seven cells
(date, open, high, low, close, adj close, volume); dividend and split
annotations render narrower and are skipped without inspecting their text.
Adj close is read with the rest of the row and dropped.

Extraction is tolerant per row: a row that fails to read or parse is
logged and skipped, and the remaining rows are still extracted. Only a
missing table is fatal.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from dateutil import parser as date_parser
from playwright.async_api import ElementHandle, Page

from . import HistoricalDataRecord
from .errors import ExtractionError

logger = logging.getLogger(__name__)

CELLS_PER_ROW = 7

DATE_CELL = 0
OPEN_CELL = 1
HIGH_CELL = 2
LOW_CELL = 3
CLOSE_CELL = 4
ADJ_CLOSE_CELL = 5  # read, never used
VOLUME_CELL = 6

_THOUSANDS_SEPARATORS = re.compile(r"[,\u00a0\u202f]")  # comma, no-break space, narrow no-break space
# Leading decimal literal, the way a lenient float reader takes "12.5M" as 12.5.
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_CELL_TEXT_JS = "el => (el.textContent || '').trim()"


def parse_number(text: str) -> float:
    """Parse a formatted numeric cell. Never raises.

    Thousands separators are stripped, then the leading decimal literal is
    read. Empty or non-numeric text yields 0.0.
    """
    if not text:
        return 0.0
    m = _NUMBER_PREFIX.match(_THOUSANDS_SEPARATORS.sub("", text).lstrip())
    if m is None:
        return 0.0
    try:
        return float(m.group())
    except (ValueError, OverflowError):
        return 0.0


def parse_date(text: str, *, dayfirst: bool = False) -> str:
    """Parse a calendar cell such as ``Sep 1, 2025`` into ``2025-09-01``.

    Empty text yields ``""``. Unparsable text raises ValueError, which drops
    the row it came from.
    """
    text = text.strip()
    if not text:
        return ""
    return date_parser.parse(text, dayfirst=dayfirst).date().isoformat()


def record_from_cells(cells: Sequence[str], *, dayfirst: bool = False) -> HistoricalDataRecord:
    """Build a record from the trimmed texts of one seven-cell row."""
    if len(cells) != CELLS_PER_ROW:
        raise ValueError(f"expected {CELLS_PER_ROW} cells, got {len(cells)}")
    return HistoricalDataRecord(
        date=parse_date(cells[DATE_CELL], dayfirst=dayfirst),
        open=parse_number(cells[OPEN_CELL]),
        high=parse_number(cells[HIGH_CELL]),
        low=parse_number(cells[LOW_CELL]),
        close=parse_number(cells[CLOSE_CELL]),
        volume=parse_number(cells[VOLUME_CELL]),
    )


@dataclass(slots=True)
class ExtractionStats:
    """Row accounting for one extraction run."""

    rows: int = 0
    wrong_shape: int = 0
    failed: int = 0
    records: int = 0


async def _row_cell_texts(row: ElementHandle, cell_selector: str) -> list[str] | None:
    """Trimmed text of every cell in *row*, or None for a non-data row."""
    cells = await row.query_selector_all(cell_selector)
    if len(cells) != CELLS_PER_ROW:
        return None
    return [await cell.evaluate(_CELL_TEXT_JS) or "" for cell in cells]


async def extract_table(
    page: Page,
    *,
    table_selector: str,
    row_selector: str,
    cell_selector: str = "td",
    timeout_ms: int = 30000,
    dayfirst: bool = False,
) -> list[HistoricalDataRecord]:
    """Read every data row of the table, in on-screen order.

    Raises:
        ExtractionError: The table did not appear within *timeout_ms*.
    """
    try:
        await page.wait_for_selector(table_selector, timeout=timeout_ms)
    except Exception as exc:
        raise ExtractionError(f"Historical data table {table_selector!r} not found at {page.url}: {exc}") from exc

    rows = await page.query_selector_all(row_selector)
    stats = ExtractionStats(rows=len(rows))
    records: list[HistoricalDataRecord] = []

    for index, row in enumerate(rows):
        try:
            texts = await _row_cell_texts(row, cell_selector)
            if texts is None:
                stats.wrong_shape += 1
                continue
            records.append(record_from_cells(texts, dayfirst=dayfirst))
        except Exception:
            stats.failed += 1
            logger.warning("Skipping unreadable table row %d", index, exc_info=True)

    stats.records = len(records)
    logger.info(
        "Extracted %d records from %d rows (%d non-data, %d failed)",
        stats.records,
        stats.rows,
        stats.wrong_shape,
        stats.failed,
    )
    return records
