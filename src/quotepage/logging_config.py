# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for quotepage.

Library modules log through ``logging.getLogger(__name__)``; this module
routes those records through structlog so a scrape run renders either as
human-readable console lines or as JSON lines. Leaf module, no quotepage
imports.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that flood DEBUG output during a browser run.
_NOISY_LOGGERS = ("asyncio", "urllib3")


def _processor_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure(*, json_output: bool = False, level: str = "INFO", **context: object) -> None:
    """Install the structlog formatter on the root logger.

    Args:
        json_output: Emit JSON lines instead of console-rendered lines.
        level: Root logger level name; unknown names fall back to INFO.
        **context: Key/values bound to every subsequent log line
            (e.g. ``symbol="AAPL"`` for one scrape run).
    """
    chain = _processor_chain()
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(root_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))

    structlog.contextvars.clear_contextvars()
    if context:
        structlog.contextvars.bind_contextvars(**context)
