"""
Structured JSON Logging with Correlation ID
Configures stdlib logging (python-json-logger) and structlog so both emit one
JSON object per line with the current request's correlation ID.
"""

import logging
import sys
import os

import structlog
from pythonjsonlogger import jsonlogger
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = 'connector-storefront-api'

_HANDLER_NAME = 'storefront-json'


class CorrelationJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with automatic correlation ID injection.

    The correlation ID is read from async context (set by
    CorrelationIdMiddleware), so records logged outside a request carry 'none'.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['correlation_id'] = correlation_id.get() or 'none'
        log_record['service'] = SERVICE_NAME
        log_record['environment'] = os.getenv('NODE_ENV') or os.getenv('ENVIRONMENT', 'development')


def add_correlation_id(logger, method_name, event_dict):
    """structlog processor: attach the request correlation ID."""
    event_dict.setdefault('correlation_id', correlation_id.get() or 'none')
    return event_dict


def setup_logging(level: str = "INFO"):
    """
    Configure structured JSON logging to stdout.

    Safe to call more than once (app factory in tests); the JSON handler is
    only attached the first time.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ...)

    Returns:
        logging.Handler: The configured handler (for testing)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()

    handler = next((h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        formatter = CorrelationJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            rename_fields={
                'timestamp': 'asctime',
                'level': 'levelname'
            }
        )
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger.setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )

    return handler
