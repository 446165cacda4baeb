"""Logging setup and per-operation timing for the Vaultnote server.

Service methods are wrapped with ``@traced``; the collected counters are
what ``GET /health`` reports.
"""
import functools
import logging
import re
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".vaultnote" / "logs"
LOG_FILE_NAME = "vaultnote.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Keyword arguments safe to echo into trace lines
TRACED_IDS = ("owner_id", "user_id", "vault_id", "note_id")

F = TypeVar('F', bound=Callable[..., Any])

_HOME_DIR = str(Path.home())


def scrub_message(message: Optional[str], max_length: int = 200) -> Optional[str]:
    """Shorten an exception message to one line without the home directory."""
    if message is None:
        return None
    if _HOME_DIR not in ("", "/"):
        message = message.replace(_HOME_DIR, "~")
    message = re.sub(r"[\r\n]+", " ", message)
    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Attach a rotating file handler (and optionally stderr) to ``vaultnote``.

    Calling it again does not add duplicate handlers.

    Args:
        log_dir: Directory for log files. Defaults to ~/.vaultnote/logs/
        level: Level for the ``vaultnote`` logger and its handlers.
        max_bytes: Size at which the log file rotates.
        backup_count: Number of rotated files to keep.
        console: Also log to stderr.

    Returns:
        The log directory.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger("vaultnote")
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = package_logger.handlers
    wanted = []
    if not any(isinstance(h, RotatingFileHandler) for h in handlers):
        wanted.append(RotatingFileHandler(
            log_path / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))
    if console and not any(type(h) is logging.StreamHandler for h in handlers):
        wanted.append(logging.StreamHandler())

    for handler in wanted:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.info(f"Logging to {log_path / LOG_FILE_NAME}")
    return log_path


@dataclass
class OperationStats:
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'calls': self.calls,
            'failures': self.failures,
            'avg_ms': round(self.total_ms / self.calls, 2) if self.calls else 0.0,
            'slowest_ms': round(self.slowest_ms, 2),
        }


class OperationMetrics:
    """Thread-safe call counters and timings keyed by operation name."""

    def __init__(self):
        self._stats: Dict[str, OperationStats] = defaultdict(OperationStats)
        self._lock = Lock()
        self._started = datetime.now(timezone.utc)

    def record(self, operation: str, duration_ms: float, ok: bool) -> None:
        with self._lock:
            stats = self._stats[operation]
            stats.calls += 1
            stats.total_ms += duration_ms
            stats.slowest_ms = max(stats.slowest_ms, duration_ms)
            if not ok:
                stats.failures += 1

    def snapshot(self) -> Dict[str, Any]:
        """Totals plus per-operation stats, as served by the health endpoint."""
        with self._lock:
            calls = sum(s.calls for s in self._stats.values())
            failures = sum(s.failures for s in self._stats.values())
            return {
                'uptime_seconds': round((datetime.now(timezone.utc) - self._started).total_seconds(), 1),
                'total_operations': calls,
                'total_errors': failures,
                'success_rate': (calls - failures) / calls if calls else 1.0,
                'operations': {name: s.as_dict() for name, s in sorted(self._stats.items())},
            }


metrics = OperationMetrics()


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Time a service call, count it in ``metrics`` and log a debug trace.

    Only the identifier keyword arguments in ``TRACED_IDS`` reach the log.
    Exceptions are counted as failures and re-raised unchanged.
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            trace_id = uuid.uuid4().hex[:8]
            ids = ', '.join(f'{k}={kwargs[k]}' for k in TRACED_IDS if k in kwargs)
            logger.debug(f"[{trace_id}] {name}({ids})")

            start = time.perf_counter()
            ok = False
            try:
                result = func(*args, **kwargs)
                ok = True
                return result
            except Exception as e:
                logger.debug(f"[{trace_id}] {name} failed: {scrub_message(str(e))}")
                raise
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                metrics.record(name, elapsed_ms, ok)
                logger.debug(f"[{trace_id}] {name} done in {elapsed_ms:.2f}ms")

        return wrapper  # type: ignore
    return decorator
