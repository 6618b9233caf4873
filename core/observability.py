"""
Logging, correlation IDs and in-process metrics for the dashboard.

Every log line written while a request is being served carries that
request's correlation ID (set by web.middleware). Panel calculators are
wrapped with @timed so their latency shows up under /api/metrics.
"""
import functools
import json
import logging
import time
import uuid
from collections import defaultdict, deque
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional, Any, Dict, Callable, Deque

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else was passed via ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Chatty third-party loggers kept at WARNING unless asked otherwise
NOISY_LOGGERS = ("uvicorn.access", "watchfiles", "asyncio", "duckdb")


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    """Short random ID for requests that arrive without X-Request-ID."""
    return uuid.uuid4().hex[:8]


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def _utc_timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for LOG_FORMAT=json."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _utc_timestamp(record).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        entry.update(_extras(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``TIMESTAMP - LEVEL - LOGGER [CORRELATION_ID] - MESSAGE | EXTRAS``"""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        line = "{} - {:8} - {}{} - {}".format(
            _utc_timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
            record.name,
            f" [{correlation_id}]" if correlation_id else "",
            record.getMessage(),
        )
        extras = _extras(record)
        if extras:
            line += f" | {extras}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", json_format: bool = False, include_libs: bool = False) -> None:
    """Route all logging through one stderr handler with the chosen formatter."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    if not include_libs:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

SLOW_OPERATION_MS = 1000


class Timer:
    """
    Wall-clock timer for a block; logs on exit when given a logger.

    Usage:
        with Timer("comprehensive_stats", logger) as timer:
            stats = await build()
        timer.elapsed_ms
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger
        self.elapsed_ms: float = 0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info):
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        if self.logger:
            _log_duration(self.logger, self.name, self.elapsed_ms, SLOW_OPERATION_MS)


def _log_duration(logger: logging.Logger, name: str, elapsed_ms: float, warn_ms: float) -> None:
    level = logging.WARNING if elapsed_ms > warn_ms else logging.DEBUG
    logger.log(level, f"{name} completed", extra={"duration_ms": round(elapsed_ms, 2)})


def timed(name: Optional[str] = None, warn_threshold_ms: float = SLOW_OPERATION_MS):
    """Record the duration of an async panel calculator, including failed runs."""
    def decorator(func: Callable) -> Callable:
        operation = name or func.__name__
        logger = get_logger(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                _log_duration(logger, operation, elapsed_ms, warn_threshold_ms)
                metrics.record_timing(operation, elapsed_ms)

        return wrapper

    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# METRICS
# ═══════════════════════════════════════════════════════════════════════════════

class MetricsCollector:
    """
    Per-process counters and rolling timing windows.

    Request counts are keyed ``"METHOD /path"``, errors by type
    (``HTTP_503``, exception class name) and timings by operation, with
    the last ``max_samples`` durations kept per operation.
    """

    def __init__(self, max_samples: int = 100):
        self._max_samples = max_samples
        self.reset()

    def reset(self) -> None:
        self._requests: Dict[str, int] = defaultdict(int)
        self._errors: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=self._max_samples))

    def record_request(self, endpoint: str) -> None:
        self._requests[endpoint] += 1

    def record_error(self, error_type: str) -> None:
        self._errors[error_type] += 1

    def record_timing(self, operation: str, duration_ms: float) -> None:
        self._timings[operation].append(duration_ms)

    @staticmethod
    def _summarize(samples: Deque[float]) -> Dict[str, Any]:
        ordered = sorted(samples)
        n = len(ordered)
        return {
            "count": n,
            "avg_ms": round(sum(ordered) / n, 2),
            "min_ms": round(ordered[0], 2),
            "max_ms": round(ordered[-1], 2),
            "p50_ms": round(ordered[n // 2], 2),
            # p95 is noise below 20 samples
            "p95_ms": round(ordered[int(n * 0.95)], 2) if n >= 20 else None,
        }

    def get_stats(self) -> Dict[str, Any]:
        return {
            "requests": dict(self._requests),
            "errors": dict(self._errors),
            "timing": {op: self._summarize(s) for op, s in self._timings.items() if s},
        }


metrics = MetricsCollector()
