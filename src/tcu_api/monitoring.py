"""In-process call metrics for TCU API exchanges and the diagnostics service.

The monitor aggregates lightweight telemetry so the client and the HTTP
diagnostics service can record events without embedding aggregation logic:

        * Per-operation latency and failure rate (endpoint path or route name)
        * Histogram of TCU status codes seen in parsed responses
        * Recent failures (fixed-size deque for debugging / introspection)

Design principles:
        1. Thread safety via a shared re-entrant lock (``RLock``).
        2. Summary outputs are primitive-only dictionaries, ready for JSON.

Example::

        from tcu_api.monitoring import get_monitor
        monitor = get_monitor()
        monitor.record_call("/applicants/checkStatus", response_time=0.21, status_code=200)
        print(monitor.get_summary()["operations"]["/applicants/checkStatus"]["total_calls"])  # -> 1

Lifecycle:
        * Lazily created by :func:`get_monitor`, or replaced with
            :func:`initialize_monitor` (for example between tests).
        * :meth:`CallMonitor.export_metrics` writes a JSON dump.
        * :meth:`CallMonitor.reset_metrics` restores a clean baseline.
"""

from __future__ import annotations

import json
import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from . import response_codes


@dataclass
class OperationMetrics:
    """Aggregated metrics for a single operation.

    Attributes:
        total_calls: Count of invocations.
        total_response_time: Cumulative latency (seconds).
        average_response_time: Mean latency (seconds).
        failure_count: Calls that raised or returned a non-success status.
        failure_rate: failure_count / total_calls (0..1).
        last_called: Datetime of most recent invocation.
        response_times: Rolling window of recent latencies.
    """

    total_calls: int = 0
    total_response_time: float = 0.0
    average_response_time: float = 0.0
    failure_count: int = 0
    failure_rate: float = 0.0
    last_called: Optional[datetime] = None
    response_times: deque = field(default_factory=lambda: deque(maxlen=100))


class CallMonitor:
    """Thread-safe recorder and summarizer of call metrics."""

    def __init__(self, enable_detailed_tracking: bool = True):
        """Initialize the monitor.

        Args:
            enable_detailed_tracking: If False, skips the per-call latency deque.
        """
        self.enable_detailed_tracking = enable_detailed_tracking
        self.start_time = datetime.now()
        self._lock = threading.RLock()
        self.operation_metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self.status_codes: Counter = Counter()
        self.recent_failures: deque = deque(maxlen=100)

    def record_call(
        self,
        operation: str,
        response_time: float,
        status_code: Optional[int] = None,
        failed: bool = False,
    ) -> None:
        """Record one call.

        Args:
            operation: Endpoint path or logical operation name.
            response_time: Duration in seconds.
            status_code: TCU status code of the parsed response, if any.
            failed: Force the call to count as a failure (e.g. it raised).
        """
        with self._lock:
            metrics = self.operation_metrics[operation]
            metrics.total_calls += 1
            metrics.total_response_time += response_time
            metrics.average_response_time = (
                metrics.total_response_time / metrics.total_calls
            )
            metrics.last_called = datetime.now()
            if self.enable_detailed_tracking:
                metrics.response_times.append(response_time)

            if status_code is not None:
                self.status_codes[status_code] += 1

            if failed:
                metrics.failure_count += 1
                self.recent_failures.append(
                    {
                        "operation": operation,
                        "status_code": status_code,
                        "timestamp": datetime.now().isoformat(),
                        "response_time": response_time,
                    }
                )
            metrics.failure_rate = metrics.failure_count / metrics.total_calls

    def get_summary(self) -> Dict[str, Any]:
        """Return a JSON-ready snapshot of all metrics."""
        with self._lock:
            total_calls = sum(m.total_calls for m in self.operation_metrics.values())
            total_failures = sum(
                m.failure_count for m in self.operation_metrics.values()
            )
            return {
                "timestamp": datetime.now().isoformat(),
                "uptime_seconds": round(
                    (datetime.now() - self.start_time).total_seconds(), 2
                ),
                "total_calls": total_calls,
                "total_failures": total_failures,
                "operations": {
                    name: {
                        "total_calls": m.total_calls,
                        "average_response_time_ms": round(
                            m.average_response_time * 1000, 2
                        ),
                        "failure_count": m.failure_count,
                        "failure_rate_percent": round(m.failure_rate * 100, 2),
                        "last_called": (
                            m.last_called.isoformat() if m.last_called else None
                        ),
                    }
                    for name, m in self.operation_metrics.items()
                },
                "status_codes": {
                    str(code): {
                        "count": count,
                        "message": response_codes.message(code),
                    }
                    for code, count in sorted(self.status_codes.items())
                },
                "recent_failures": list(self.recent_failures)[-20:],
            }

    def export_metrics(self, file_path: Path) -> None:
        """Persist the summary to ``file_path`` as JSON."""
        payload = {"export_time": datetime.now().isoformat(), "summary": self.get_summary()}
        with open(file_path, "w") as f:
            json.dump(payload, f, indent=2, default=str)

    def reset_metrics(self) -> None:
        with self._lock:
            self.operation_metrics.clear()
            self.status_codes.clear()
            self.recent_failures.clear()
            self.start_time = datetime.now()


# Global monitor instance
_monitor: Optional[CallMonitor] = None


def get_monitor() -> CallMonitor:
    """Return (and lazily initialize) the process-wide monitor."""
    global _monitor
    if _monitor is None:
        _monitor = CallMonitor()
    return _monitor


def initialize_monitor(enable_detailed_tracking: bool = True) -> CallMonitor:
    global _monitor
    _monitor = CallMonitor(enable_detailed_tracking)
    return _monitor
