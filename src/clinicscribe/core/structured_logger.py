"""
Structured logging utilities for dictation lifecycle logging
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .constants import LOGGER_NAME


class StructuredLogger:
    """
    Logger wrapper that attaches keyword context to every record
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.context: Dict[str, Any] = dict(context or {})

    def log(self, level: int, message: str, **kwargs: Any) -> None:
        """Log with structured data"""
        exc_info = kwargs.pop("exc_info", None)
        self.logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"extra_data": {**self.context, **kwargs}},
        )

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info level"""
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning level"""
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error level"""
        self.log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug level"""
        self.log(logging.DEBUG, message, **kwargs)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        if hasattr(record, "extra_data"):
            log_obj.update(record.extra_data)

        return json.dumps(log_obj, default=str)


class TextFormatter(logging.Formatter):
    """Plain formatter that appends structured context as key=value pairs"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra = getattr(record, "extra_data", None)
        if extra:
            line += " | " + " ".join(f"{k}={v}" for k, v in extra.items())
        return line


def configure_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """Attach a stdout handler to the application logger namespace"""
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)
    formatter: logging.Formatter = JSONFormatter() if fmt == "json" else TextFormatter()

    for handler in root.handlers:
        if getattr(handler, "_clinicscribe", False):
            handler.setFormatter(formatter)
            return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler._clinicscribe = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


def get_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a structured logger, optionally bound to context"""
    return StructuredLogger(name, context)
