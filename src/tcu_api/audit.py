"""Audit trail hooks for authentication attempts and API calls.

The client hands an :class:`AuditEntry` to an :class:`AuditSink` after every
exchange. Sinks are fire-and-forget: :func:`dispatch` logs and discards any
exception a sink raises so auditing can never fail the calling operation.

Two sinks ship with the package:

* :class:`LoggingAuditSink` - one structured log line per entry.
* :class:`MemoryAuditSink` - bounded in-process history (diagnostics, tests).

Persistent storage (databases, log shippers) is left to callers implementing
the ``record`` method.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    """Single audited event.

    Attributes:
        kind: ``"request"`` for API calls, ``"authentication"`` for credential events.
        endpoint: Endpoint path (requests) or operation name (authentication).
        username: Account the event belongs to.
        success: Whether the operation completed without raising.
        status_code: Parsed TCU status code when available.
        execution_time_ms: Wall-clock duration.
        request_xml: Outgoing envelope (requests only).
        response_xml: Raw response text (requests only).
        error_message: Failure description.
        timestamp: ISO-8601 UTC instant of creation.
    """

    kind: str
    endpoint: str
    username: str = ""
    success: bool = True
    status_code: Optional[int] = None
    execution_time_ms: float = 0.0
    request_xml: Optional[str] = None
    response_xml: Optional[str] = None
    error_message: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None:  # pragma: no cover - protocol
        ...


class LoggingAuditSink:
    """Write each entry to a logger (``tcu_api.audit`` by default)."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def record(self, entry: AuditEntry) -> None:
        outcome = "ok" if entry.success else "failed"
        self.log.log(
            self.level,
            f"[{entry.kind}] {entry.endpoint} user={entry.username} "
            f"status={entry.status_code} outcome={outcome} "
            f"time={entry.execution_time_ms:.2f}ms"
            + (f" error={entry.error_message}" if entry.error_message else ""),
        )


class MemoryAuditSink:
    """Thread-safe bounded history of entries."""

    def __init__(self, maxlen: int = 1000):
        self._entries: deque = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def record(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> List[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def dispatch(sink: Optional[AuditSink], entry: AuditEntry) -> None:
    """Deliver ``entry`` to ``sink`` without ever propagating sink failures."""
    if sink is None:
        return
    try:
        sink.record(entry)
    except Exception as exc:
        logger.warning(f"Audit sink {type(sink).__name__} failed: {exc}")
