"""
Centralized logging configuration for InsightSmith.
"""

import logging
import os
import sys
import re
from pathlib import Path
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo
from contextvars import ContextVar

# Context var to hold request/trace id
REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

MANILA_TZ = ZoneInfo("Asia/Manila")


class ManilaFormatter(logging.Formatter):
    """Formatter that renders %(asctime)s in Philippine time (Asia/Manila)."""
    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, MANILA_TZ)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime('%Y-%m-%dT%H:%M:%S %Z')


class RequestIdFilter(logging.Filter):
    """Inject request_id from contextvar into log records."""
    def filter(self, record: logging.LogRecord) -> bool:
        rid = REQUEST_ID.get()
        if not hasattr(record, "request_id"):
            record.request_id = rid or "-"
        return True


class LoggerManager:
    """Manages application-wide logging configuration."""

    _instance: Optional['LoggerManager'] = None
    _configured: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        self.log_dir = Path(os.getenv("INSIGHTSMITH_LOG_DIR", "logs"))

    def setup_logging(self, level: str = "INFO") -> None:
        """
        Configure application-wide logging.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        log_level = getattr(logging, level.upper(), logging.INFO)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = self.log_dir / "app.log"

        detailed_formatter = ManilaFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - [rid:%(request_id)s] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        simple_fmt = '%(asctime)s - %(levelname)s - [rid:%(request_id)s] - %(message)s'

        req_filter = RequestIdFilter()

        # File handler - detailed logging
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        file_handler.addFilter(req_filter)

        # If terminal does not support ANSI, strip codes from console output
        supports_color = sys.stdout.isatty() and os.getenv("TERM") not in (None, "dumb")

        class _StripANSIFormatter(ManilaFormatter):
            ansi_re = re.compile(r"\x1b\[[0-9;]*m")

            def format(self, record):
                s = super().format(record)
                return s if supports_color else self.ansi_re.sub("", s)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(_StripANSIFormatter(simple_fmt, datefmt='%H:%M:%S'))
        console_handler.addFilter(req_filter)

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        # Remove existing handlers to avoid duplicates
        root_logger.handlers.clear()
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        # Route uvicorn/fastapi output through the same handlers
        for lname in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
            lg = logging.getLogger(lname)
            lg.setLevel(log_level)
            lg.handlers = [file_handler, console_handler]
            lg.propagate = False

        LoggerManager._configured = True

        logger = logging.getLogger(__name__)
        logger.info("=" * 60)
        logger.info("InsightSmith Application Starting")
        logger.info(f"Log File: {log_file}")
        logger.info(f"Log Level: {level.upper()}")
        logger.info(f"Started at: {datetime.now(MANILA_TZ).strftime('%Y-%m-%d %H:%M:%S PHT')}")
        logger.info("=" * 60)

        # Suppress noisy third-party loggers
        for noisy in ("httpx", "httpcore", "openai", "anthropic", "urllib3", "asyncio"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    @property
    def configured(self) -> bool:
        return LoggerManager._configured

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger instance for a specific module.

        Args:
            name: Logger name (typically __name__ of the module)

        Returns:
            Configured logger instance
        """
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """
    Convenience function to get a logger.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured logger instance
    """
    manager = LoggerManager()
    return manager.get_logger(name)


# Request ID helpers (used by API middleware)

def bind_request_id(request_id: Optional[str]) -> None:
    REQUEST_ID.set(request_id)


def clear_request_id() -> None:
    REQUEST_ID.set(None)


__all__ = [
    "LoggerManager",
    "get_logger",
    "bind_request_id",
    "clear_request_id",
]
