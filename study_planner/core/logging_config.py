# study_planner/core/logging_config.py
"""structlog setup shared by the dashboard, the health-check script and tests.

Call `setup_logging()` once at startup; modules then use
`structlog.get_logger(__name__)` and log key-value context.
"""
import logging
import sys

import structlog


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
