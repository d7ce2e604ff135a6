"""
Logging setup for the crawler.

Every module logs through ``logging.getLogger(__name__)``; ``setup_logging``
wires the root logger once per process.
"""

import logging
import logging.handlers
import json
import sys
from pathlib import Path
from typing import Dict, Any, Iterable, Optional, TYPE_CHECKING
from datetime import datetime, timezone

from .config import LoggingConfig

if TYPE_CHECKING:
    from ..crawler.request import CrawlRequest

NOISY_LOGGERS = ('aiohttp.access', 'urllib3.connectionpool')
QUIET_LIBRARIES = ('aiohttp', 'asyncio', 'filelock')


class JSONFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }
        entry.update(getattr(record, 'extra_fields', {}))

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class CrawlerLogAdapter(logging.LoggerAdapter):
    """
    Attaches fixed context (worker id and similar) to every record.

    The context travels in ``record.extra_fields`` so that JSONFormatter can
    emit it as top-level keys.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault('extra', {})
        extra['extra_fields'] = {**self.extra, **extra.get('extra_fields', {})}
        return msg, kwargs

    def log_request_event(self, level: int, request: "CrawlRequest", message: str):
        """Log something that happened to one crawl request, with its fields attached."""
        fields = {**request.to_dict(), 'event_type': 'request_event'}
        self.log(level, message, extra={'extra_fields': fields})


class PerformanceFilter(logging.Filter):
    """Drops records from chatty third-party loggers."""

    def __init__(self, suppress_modules: Optional[Iterable[str]] = None):
        super().__init__()
        self.suppress_modules = tuple(suppress_modules or NOISY_LOGGERS)

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(self.suppress_modules)


def _make_handler(handler: logging.Handler, level: int, formatter: logging.Formatter,
                  log_filter: Optional[logging.Filter] = None) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    if log_filter is not None:
        handler.addFilter(log_filter)
    return handler


def setup_logging(config: LoggingConfig,
                  enable_performance_filtering: bool = True) -> logging.Logger:
    """
    Configure the root logger from the logging section of the config.

    Installs a console handler (INFO and up), a rotating log file (everything
    at the configured level) and a rotating ``errors.log`` next to it.

    Args:
        config: Logging configuration section
        enable_performance_filtering: Drop records from noisy third-party loggers

    Returns:
        The configured root logger
    """
    log_file = Path(config.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = JSONFormatter() if config.json else logging.Formatter(config.format)
    log_filter = PerformanceFilter() if enable_performance_filtering else None

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))
    root_logger.handlers.clear()

    root_logger.addHandler(_make_handler(
        logging.StreamHandler(sys.stdout), logging.INFO, formatter, log_filter))
    root_logger.addHandler(_make_handler(
        logging.handlers.RotatingFileHandler(
            log_file, maxBytes=50 * 1024 * 1024, backupCount=5, encoding='utf-8'),
        logging.DEBUG, formatter, log_filter))
    root_logger.addHandler(_make_handler(
        logging.handlers.RotatingFileHandler(
            log_file.parent / 'errors.log', maxBytes=10 * 1024 * 1024, backupCount=3, encoding='utf-8'),
        logging.ERROR, formatter))

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized: level={config.level}, file={log_file}, json={config.json}")
    return root_logger


def get_crawler_logger(name: str, **extra_context) -> CrawlerLogAdapter:
    """Return a logger adapter that adds ``extra_context`` to every record."""
    return CrawlerLogAdapter(logging.getLogger(name), extra_context)
