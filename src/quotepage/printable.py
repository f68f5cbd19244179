# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PDF export as an opt-in capability wrapped around any page model.

Chromium only renders PDFs in headless mode.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .page_model import PageModel

logger = logging.getLogger(__name__)


@runtime_checkable
class Printable(Protocol):
    async def print_page(self, path: str | Path | None = None) -> bytes: ...


class PrintablePage:
    """A page model paired with the ability to export its tab as PDF."""

    def __init__(self, model: PageModel, **pdf_options: Any) -> None:
        self.model = model
        self.pdf_options = pdf_options

    async def print_page(self, path: str | Path | None = None) -> bytes:
        """Render the model's current page to PDF bytes, optionally saving to *path*."""
        pdf = await self.model.page.pdf(**self.pdf_options)
        if path is not None:
            Path(path).write_bytes(pdf)
            logger.info("%s exported to %s (%d bytes)", self.model.name, path, len(pdf))
        return pdf
