"""In-process error and request-timing monitors.

Both monitors are plain objects constructed by the application factory and
handed to request handlers through ``app.state``; nothing here is a module
global.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Deque, Dict, List, Optional

_HOUR = 60 * 60
_DAY = 24 * _HOUR


@dataclass
class CapturedError:
    error_type: str
    message: str
    context: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.error_type,
            "message": self.message,
            "context": dict(self.context),
            "timestamp": datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
        }


class ErrorMonitor:
    """Bounded queue of recently captured errors."""

    def __init__(self, max_queue_size: int = 100, clock: Callable[[], float] = time.time) -> None:
        self._errors: Deque[CapturedError] = deque(maxlen=max_queue_size)
        self._clock = clock
        self._lock = Lock()

    def capture(self, error: BaseException, **context: Any) -> None:
        entry = CapturedError(
            error_type=type(error).__name__,
            message=str(error),
            context=context,
            timestamp=self._clock(),
        )
        with self._lock:
            self._errors.append(entry)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        with self._lock:
            errors = list(self._errors)
        return {
            "total_errors": len(errors),
            "errors_last_hour": sum(1 for e in errors if e.timestamp > now - _HOUR),
            "errors_last_day": sum(1 for e in errors if e.timestamp > now - _DAY),
            "recent_errors": [e.as_dict() for e in errors[-10:]],
        }

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()


class PerformanceMonitor:
    """Keeps the most recent durations (milliseconds) per metric name."""

    def __init__(self, window: int = 100) -> None:
        self._window = window
        self._metrics: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def record(self, name: str, duration_ms: float) -> None:
        with self._lock:
            samples = self._metrics.get(name)
            if samples is None:
                samples = deque(maxlen=self._window)
                self._metrics[name] = samples
            samples.append(duration_ms)

    def metric_stats(self, name: str) -> Optional[Dict[str, float]]:
        with self._lock:
            samples: List[float] = list(self._metrics.get(name, ()))
        if not samples:
            return None
        return {
            "count": len(samples),
            "average": sum(samples) / len(samples),
            "min": min(samples),
            "max": max(samples),
            "latest": samples[-1],
        }

    def stats(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            names = sorted(self._metrics)
        result: Dict[str, Dict[str, float]] = {}
        for name in names:
            summary = self.metric_stats(name)
            if summary is not None:
                result[name] = summary
        return result

    def clear(self) -> None:
        with self._lock:
            self._metrics.clear()
