"""
Card Lens - Logging System
Centralized logging configuration with multiple handlers
"""
import copy
import json
import logging
import logging.handlers
import sys
import time
import traceback
from datetime import datetime, timezone
from functools import wraps

import config

LOG_DIR = config.LOG_DIR
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_LEVEL = config.LOG_LEVEL
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-24s | %(funcName)-20s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
ROOT_LOGGER_NAME = 'Card Lens'


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        if hasattr(record, 'extra_data'):
            log_data['extra'] = record.extra_data

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # Colour a copy so the file handlers keep the plain level name
        record = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(filename: str, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Setup and configure a logger with multiple handlers

    Args:
        name: Logger name (default: 'Card Lens')

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.DEBUG))
    logger.propagate = False

    # Console only shows warnings and errors
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    file_formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logger.addHandler(_rotating_handler('Card Lens.log', logging.DEBUG, file_formatter))
    logger.addHandler(_rotating_handler('errors.log', logging.ERROR, file_formatter))
    logger.addHandler(_rotating_handler('Card Lens.json.log', logging.INFO, JSONFormatter()))

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a child logger for a specific module

    Args:
        name: Module name (will be prefixed with 'Card Lens.')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')
    return logging.getLogger(ROOT_LOGGER_NAME)


def log_api_call(logger: logging.Logger = None):
    """
    Decorator specifically for API endpoint logging
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            _logger = logger or get_logger('api')
            func_name = func.__name__

            from flask import request

            _logger.info(f"API REQUEST | {request.method} {request.path} | endpoint={func_name}")

            try:
                result = func(*args, **kwargs)

                status_code = 200
                if isinstance(result, tuple) and len(result) > 1:
                    status_code = result[1]

                _logger.info(f"API RESPONSE | {request.method} {request.path} | status={status_code}")
                return result
            except Exception as e:
                _logger.error(f"API ERROR | {request.method} {request.path} | error={str(e)}", exc_info=True)
                raise
        return wrapper
    return decorator


class PerformanceLogger:
    """Context manager for logging performance metrics"""

    def __init__(self, operation: str, logger: logging.Logger = None):
        self.operation = operation
        self.logger = logger or get_logger('performance')
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"START | {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self.start_time

        if exc_type:
            self.logger.error(f"FAILED | {self.operation} | elapsed={self.elapsed:.4f}s | error={exc_val}")
        else:
            self.logger.info(f"COMPLETED | {self.operation} | elapsed={self.elapsed:.4f}s")

        return False  # Don't suppress exceptions


# Initialize main logger on import
_main_logger = setup_logger(ROOT_LOGGER_NAME)
