"""
Logging utilities for httpcheck.
"""

import logging
import logging.handlers
import json
import sys
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime, timezone


DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, ensure_ascii=False)


class CheckLogAdapter(logging.LoggerAdapter):
    """Logger adapter that attaches check context to every record."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Merge adapter context into the record's extra fields."""
        extra = kwargs.setdefault('extra', {})
        fields = dict(self.extra)
        fields.update(extra.pop('extra_fields', {}))
        extra['extra_fields'] = fields
        return msg, kwargs

    def log_url_event(self, level: int, url: str, message: str, **kwargs):
        """Log an event about a specific URL."""
        extra = kwargs.setdefault('extra', {})
        extra['extra_fields'] = {'url': url, 'event_type': 'url_event'}
        self.log(level, message, **kwargs)

    def log_run_stat(self, stat_name: str, value: Any, **kwargs):
        """Log a run statistic."""
        extra = kwargs.setdefault('extra', {})
        extra['extra_fields'] = {
            'stat_name': stat_name,
            'stat_value': value,
            'event_type': 'run_stat',
        }
        self.info(f"Stat: {stat_name} = {value}", **kwargs)


def setup_logging(config: Dict[str, Any], enable_json: bool = False) -> logging.Logger:
    """
    Configure logging for a run.

    Console records go to stderr so stdout stays reserved for results.
    A rotating file handler is added when ``config['file']`` is set.

    Args:
        config: Logging configuration dictionary (level, file, format)
        enable_json: Enable JSON formatted logging

    Returns:
        Configured root logger
    """
    level = getattr(logging, str(config.get('level') or 'WARNING').upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if enable_json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(config.get('format') or DEFAULT_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
            encoding='utf-8'
        )
        # The file keeps everything the root logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    third_party_loggers = {
        'aiohttp': logging.WARNING,
        'asyncio': logging.WARNING,
    }

    for logger_name, third_party_level in third_party_loggers.items():
        logging.getLogger(logger_name).setLevel(third_party_level)

    root_logger.debug("Logging system initialized")
    root_logger.debug(f"Log file: {log_file or 'none'}")
    root_logger.debug(f"Log level: {logging.getLevelName(level)}")
    root_logger.debug(f"JSON formatting: {enable_json}")

    return root_logger


def get_checker_logger(name: str, **extra_context) -> CheckLogAdapter:
    """
    Get a logger that carries check context.

    Args:
        name: Logger name
        **extra_context: Fields to include in every record

    Returns:
        CheckLogAdapter instance
    """
    logger = logging.getLogger(name)
    return CheckLogAdapter(logger, extra_context)
