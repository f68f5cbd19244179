# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Selector catalog: the site's CSS selectors as validated configuration.

The packaged ``selectors.yaml`` is the default; ``QUOTEPAGE_SELECTORS`` or an
explicit path replaces it when the site's markup drifts.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import SelectorCatalogError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "selectors.yaml"
ENV_CATALOG_PATH = "QUOTEPAGE_SELECTORS"


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class SiteInfo(_Section):
    name: str = Field(description="Text the home page title must contain")
    base_url: str = Field(description="Landing page URL")


class HomeSelectors(_Section):
    quote_lookup_input: str


class QuoteSelectors(_Section):
    quote_lookup_input: str = Field(description="Marker present on every quote subpage")


class HistoricalSelectors(_Section):
    date_range_button: str
    date_picker_panel: str
    start_date_input: str
    end_date_input: str
    done_button: str
    frequency_button: str
    frequency_listbox: str
    frequency_option: str = Field(description="Template with a {code} placeholder")
    data_table: str
    table_rows: str
    table_cells: str

    def frequency_option_for(self, code: str) -> str:
        return self.frequency_option.format(code=code)


class SelectorCatalog(_Section):
    site: SiteInfo
    home: HomeSelectors
    quote: QuoteSelectors
    historical: HistoricalSelectors


def _read_catalog(path: Path) -> SelectorCatalog:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SelectorCatalogError(f"Cannot read selector catalog {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SelectorCatalogError(f"Selector catalog {path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise SelectorCatalogError(f"Selector catalog {path} must be a mapping, got {type(raw).__name__}")
    try:
        return SelectorCatalog.model_validate(raw)
    except ValidationError as exc:
        raise SelectorCatalogError(f"Selector catalog {path} is invalid: {exc}") from exc


@lru_cache(maxsize=8)
def _cached_catalog(path: Path) -> SelectorCatalog:
    catalog = _read_catalog(path)
    logger.debug("Selector catalog loaded from %s", path)
    return catalog


def load_selectors(path: str | Path | None = None) -> SelectorCatalog:
    """Load the selector catalog.

    Resolution order: explicit *path*, then ``$QUOTEPAGE_SELECTORS``, then the
    packaged default. Results are cached per resolved path.
    """
    if path is None:
        path = os.environ.get(ENV_CATALOG_PATH, "").strip() or DEFAULT_CATALOG_PATH
    return _cached_catalog(Path(path).resolve())
