"""
Structured logging for talentmatch.

One process-wide logger writes to the console and to a dated file under
the log directory. Keyword context is appended to each message as JSON.
The logger also keeps counters for provider calls, per-field cache hits
and per-layer failures so a ranking run can be summarized at the end.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def _with_format(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
    return handler


def _empty_metrics() -> dict:
    return {
        "api_calls": 0,
        "cache_hits": {},
        "cache_misses": {},
        "failures_by_layer": {},
        "errors_by_type": {},
    }


def _increment(counter: dict, key: str):
    counter[key] = counter.get(key, 0) + 1


class StructuredLogger:
    """
    Wrapper around a stdlib logger with keyword context and run metrics.

    Args:
        name: Name of the underlying logging.Logger
        level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the dated log file (default: logs/)
        enable_file: Attach the file handler
        enable_console: Attach the stdout handler
    """

    def __init__(
        self,
        name: str = "talentmatch",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        self.logger = logging.getLogger(name)
        self.metrics = _empty_metrics()
        self.configure(level, log_dir, enable_file, enable_console)

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """Replace handlers, e.g. once settings are known at CLI startup."""
        numeric_level = getattr(logging, level.upper())
        self.logger.setLevel(numeric_level)
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        if enable_console:
            self.logger.addHandler(
                _with_format(logging.StreamHandler(sys.stdout), numeric_level, CONSOLE_FORMAT)
            )

        if enable_file:
            log_dir = Path(log_dir or "logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"talentmatch_{datetime.now():%Y%m%d}.log"
            # file keeps DEBUG regardless of console level
            self.logger.addHandler(
                _with_format(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)
            )

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metrics

    def record_api_call(self):
        """Count one provider request (retries count separately)."""
        self.metrics["api_calls"] += 1

    def record_cache_hit(self, field: str):
        _increment(self.metrics["cache_hits"], field)

    def record_cache_miss(self, field: str):
        _increment(self.metrics["cache_misses"], field)

    def record_failure(self, layer: str, error_type: str):
        """Record an item or batch dropped by a pipeline layer."""
        _increment(self.metrics["failures_by_layer"], layer)
        _increment(self.metrics["errors_by_type"], error_type)

    def get_metrics(self) -> dict:
        """Snapshot of the counters plus a per-field cache hit rate."""
        snapshot = {
            key: (dict(value) if isinstance(value, dict) else value)
            for key, value in self.metrics.items()
        }
        hits, misses = snapshot["cache_hits"], snapshot["cache_misses"]
        snapshot["cache_hit_rate"] = {
            field: round(hits.get(field, 0) / (hits.get(field, 0) + misses.get(field, 0)), 3)
            for field in set(hits) | set(misses)
        }
        return snapshot

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        self.info("=== Matching Session Metrics ===")
        self.info(f"API Calls: {metrics['api_calls']}")

        if metrics["cache_hit_rate"]:
            self.info("Cache Hit Rates:")
            for field, rate in sorted(metrics["cache_hit_rate"].items()):
                total = metrics["cache_hits"].get(field, 0) + metrics["cache_misses"].get(field, 0)
                self.info(f"  {field}: {metrics['cache_hits'].get(field, 0)}/{total} ({rate * 100:.1f}%)")

        for title, key in (("Dropped Items By Layer:", "failures_by_layer"), ("Error Types:", "errors_by_type")):
            if metrics[key]:
                self.info(title)
                for name, count in metrics[key].items():
                    self.info(f"  {name}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "talentmatch", level: str = "INFO", **kwargs) -> StructuredLogger:
    """
    Return the process-wide logger, creating it on first use.

    Arguments only apply to that first call; later callers get the same
    instance. Use StructuredLogger.configure to change handlers afterwards.
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Drop the process-wide logger (tests)."""
    global _global_logger
    _global_logger = None
