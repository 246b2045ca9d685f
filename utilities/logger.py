"""
Structured logging setup using structlog.
Provides JSON or console output and a context-bound logger for catalog lookups.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
import structlog
from structlog.stdlib import LoggerFactory

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "pymongo")


def _build_processors(log_format: str, debug: bool) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder([
            structlog.processors.CallsiteParameter.MODULE,
            structlog.processors.CallsiteParameter.LINENO,
        ]))

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    debug: bool = False
) -> None:
    """
    Configure structlog on top of the standard library root logger.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: ``json`` for one object per line, anything else for console output
        log_file: Also write every event to this path
        debug: Add module and line number to every event
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(format="%(message)s", level=level, handlers=handlers, force=True)

    if not debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=_build_processors(log_format, debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=log_level,
        format=log_format,
        file=log_file,
        debug=debug
    )


class LookupLogger:
    """
    Events for one catalog lookup.

    Every event carries the query and path bound when the lookup starts, so the steps of a
    single fallback chain can be followed in the log.
    """

    def __init__(self, name: str = "catalog"):
        self.logger = structlog.get_logger(name)

    def log_lookup_start(self, query: str, path: str) -> None:
        self.logger = self.logger.bind(query=query, path=path)
        self.logger.info("Catalog lookup started")

    def log_provider_miss(self, provider: str, url: str) -> None:
        """A provider answered but had no usable record."""
        self.logger.info("Provider returned no record", provider=provider, url=url)

    def log_lookup_complete(self, count: int) -> None:
        self.logger.info("Catalog lookup completed", count=count)

    def log_error(self, error: str, url: Optional[str] = None, retry_count: Optional[int] = None) -> None:
        self.logger.error("Catalog provider failed", error=error, url=url, retry_count=retry_count)

    def log_retry(self, url: str, attempt: int, max_attempts: int, delay: float) -> None:
        self.logger.warning(
            "Retrying provider request",
            url=url,
            attempt=attempt,
            max_attempts=max_attempts,
            delay_seconds=delay
        )
