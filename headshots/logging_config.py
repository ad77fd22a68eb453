"""
Headshots Logging Configuration

Structured logs with bound context. Every record carries the id of the
HTTP request that produced it (when there is one) so a shoot, its
provider calls and its webhook can be followed through the output.
"""
import asyncio
import json
import logging
import os
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

# ============================================================
# SETTINGS
# ============================================================

LOG_LEVEL = os.environ.get("HEADSHOTS_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("HEADSHOTS_LOG_FORMAT", "json")  # json or text

# Set by RequestLoggingMiddleware for the duration of a request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{os.urandom(3).hex()}"


# ============================================================
# STRUCTURED LOGGER
# ============================================================

class StructuredLogger:
    """Logger that emits an event name plus keyword context.

    `bind()` returns a child that repeats the given context on every
    record, e.g. `logger.bind(prediction_id=...)` inside a shoot.
    """

    def __init__(self, name: str, **bound):
        self.name = name
        self.bound = bound
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter() if LOG_FORMAT == "json" else TextFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self.name, **{**self.bound, **context})

    def _log(self, level: int, event: str, context: Dict[str, Any], exc: Optional[BaseException] = None):
        if not self.logger.isEnabledFor(level):
            return
        if exc is not None:
            context["error_type"] = type(exc).__name__
            context["error_message"] = str(exc)
            if exc.__traceback__ is not None:
                context["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self.logger.log(level, event, extra={"context": {**self.bound, **context}, "logger_name": self.name})

    def debug(self, event: str, **context):
        self._log(logging.DEBUG, event, context)

    def info(self, event: str, **context):
        self._log(logging.INFO, event, context)

    def warning(self, event: str, **context):
        self._log(logging.WARNING, event, context)

    def error(self, event: str, error: Optional[BaseException] = None, **context):
        self._log(logging.ERROR, event, context, error)

    def critical(self, event: str, error: Optional[BaseException] = None, **context):
        self._log(logging.CRITICAL, event, context, error)


# ============================================================
# FORMATTERS
# ============================================================

def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = dict(getattr(record, "context", {}) or {})
    request_id = request_id_var.get()
    if request_id:
        fields.setdefault("request_id", request_id)
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "event": record.getMessage(),
        }
        log_data.update(_record_fields(record))
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Colored single-line output for local development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        logger_name = getattr(record, "logger_name", record.name).rsplit(".", 1)[-1]
        line = (
            f"{color}{datetime.now().strftime('%H:%M:%S')} {record.levelname:<8}{self.RESET}"
            f"{logger_name}: {record.getMessage()}"
        )

        fields = _record_fields(record)
        tb = fields.pop("traceback", None)
        if fields:
            line += f" {self.DIM}" + " ".join(f"{k}={v}" for k, v in fields.items()) + self.RESET
        if tb:
            line += "\n" + tb.rstrip()
        return line


# ============================================================
# TIMING
# ============================================================

def timed(logger: StructuredLogger):
    """Log the duration of a sync or async callable at debug level.

    Failures are logged at error level and re-raised.
    """
    def decorator(func):
        def finish(start: float, error: Optional[BaseException] = None):
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            if error is None:
                logger.debug(f"{func.__qualname__} completed", duration_ms=duration_ms)
            else:
                logger.error(f"{func.__qualname__} failed", error=error, duration_ms=duration_ms)

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    finish(start, e)
                    raise
                finish(start)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                finish(start, e)
                raise
            finish(start)
            return result
        return sync_wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

api_logger = StructuredLogger("headshots.api")


def get_logger(name: str) -> StructuredLogger:
    """Logger under the `headshots.` namespace"""
    return StructuredLogger(f"headshots.{name}")
