# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""quotepage: page models for quote websites.

Drives a Playwright tab through a quote site, proves each page is the
expected one before acting, and converts the rendered historical price
table into typed records:
- page models: validated, tab-sharing representations of each page
- historical records: date + open/high/low/close/volume per table row
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum


@dataclass(frozen=True, slots=True)
class HistoricalDataRecord:
    """One row of the historical prices table."""

    date: str  # ISO 8601 YYYY-MM-DD, "" when the cell was empty
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> dict[str, str | float]:
        return asdict(self)


class Frequency(StrEnum):
    """Sampling interval offered by the historical data page."""

    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"

    @property
    def interval_code(self) -> str:
        return FREQUENCY_CODES[self]


FREQUENCY_CODES: dict[Frequency, str] = {
    Frequency.DAILY: "1d",
    Frequency.WEEKLY: "1wk",
    Frequency.MONTHLY: "1mo",
}
