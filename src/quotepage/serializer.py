# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Historical record serialization: JSON and CSV.

Both formats keep the extraction order of the records.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable

from . import HistoricalDataRecord

CSV_COLUMNS = ("date", "open", "high", "low", "close", "volume")


def to_json(records: Iterable[HistoricalDataRecord], indent: int = 2) -> str:
    """Serialize records to a JSON array of objects.

    Args:
        records: Records in extraction order
        indent: JSON indentation level

    Returns:
        JSON string
    """
    return json.dumps([r.to_dict() for r in records], indent=indent, ensure_ascii=False)


def to_csv(records: Iterable[HistoricalDataRecord]) -> str:
    """Serialize records to CSV with a header row."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow(record.to_dict())
    return buf.getvalue()
