"""Synchronous TCU API client.

:class:`TCUClient` strings the marshalling layer together for one
request/response exchange::

    credential -> RequestBuilder -> Transport.send -> ResponseParser -> CanonicalResponse

Transport is pluggable through the :class:`Transport` protocol; the default
:class:`HttpxTransport` posts ``application/xml`` over a single
``httpx.Client``. There is no retry loop: a failed exchange
surfaces immediately as :class:`~tcu_api.exceptions.NetworkError`.

Every call is timed into the :class:`~tcu_api.monitoring.CallMonitor` and
reported to the audit sink (when configured), including failed calls.

Example::

    from tcu_api import ClientConfig, TCUClient

    config = ClientConfig.from_env()
    with TCUClient(config) as client:
        record = client.check_status("S0123/0001/2023")
        if record.is_success():
            print(record.data.to_python())
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Protocol

import httpx

from .audit import AuditEntry, AuditSink, dispatch
from .config import ClientConfig
from .credential import AuthenticationManager, UsernameToken
from .exceptions import AuthenticationError, NetworkError, TCUAPIError, ValidationError
from .monitoring import CallMonitor, get_monitor
from .request_builder import RequestBuilder
from .response_parser import CanonicalResponse, ResponseParser

logger = logging.getLogger(__name__)

CHECK_STATUS_ENDPOINT = "/applicants/checkStatus"


class Transport(Protocol):
    def send(self, endpoint: str, xml: str) -> str:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...


class HttpxTransport:
    """POST request envelopes with httpx.

    Args:
        base_url: Prefix joined with endpoint paths.
        timeout: Per-request timeout in seconds.
        user_agent: ``User-Agent`` header value.
        client: Pre-built ``httpx.Client`` (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        user_agent: str = "TCU-API-Client/1.0",
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)
        self.headers = {
            "Content-Type": "application/xml",
            "Accept": "application/xml",
            "User-Agent": user_agent,
        }

    def send(self, endpoint: str, xml: str) -> str:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = self.client.post(url, content=xml.encode("utf-8"), headers=self.headers)
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"Request to {url} failed: {exc}", context={"url": url}
            ) from exc

        if response.status_code == 401:
            raise AuthenticationError(
                "Authentication failed. Please check your credentials.",
                context={"url": url},
            )
        if response.status_code >= 400:
            raise NetworkError(
                f"API request failed with status {response.status_code}",
                code=response.status_code,
                context={"url": url, "body": response.text[:500]},
            )
        return response.text

    def close(self) -> None:
        self.client.close()


class TCUClient:
    """Facade performing authenticated request/response exchanges.

    Args:
        config: Connection and credential settings (validated eagerly).
        transport: Sender; defaults to :class:`HttpxTransport` built from ``config``.
        audit_sink: Optional sink receiving one entry per call.
        monitor: Metrics recorder; defaults to the process-wide monitor.
        builder: Request builder (inject a clock for deterministic output).
        parser: Response parser.

    Raises:
        ValidationError: If ``config`` reports problems.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        audit_sink: Optional[AuditSink] = None,
        monitor: Optional[CallMonitor] = None,
        builder: Optional[RequestBuilder] = None,
        parser: Optional[ResponseParser] = None,
    ) -> None:
        errors = config.validate()
        if errors:
            raise ValidationError("Configuration validation failed", errors)

        self.config = config
        self.transport: Transport = transport or HttpxTransport(
            config.base_url, config.timeout, config.user_agent
        )
        self.audit_sink = audit_sink
        self.monitor = monitor or get_monitor()
        self.builder = builder or RequestBuilder()
        self.parser = parser or ResponseParser()
        self.auth = AuthenticationManager(config, audit_sink)
        self._credential: Optional[UsernameToken] = None

    def __enter__(self) -> "TCUClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    @property
    def credential(self) -> UsernameToken:
        """Current credential, refreshed from configuration once expired."""
        if self._credential is None or not self.auth.validate_token(self._credential):
            self._credential = self.auth.refresh_token()
        return self._credential

    def call(self, endpoint: str, parameters: Any = None) -> CanonicalResponse:
        """Perform one exchange against ``endpoint``.

        Raises:
            AuthenticationError: Credentials rejected locally or by the server.
            BuildError: Parameters cannot be serialized.
            NetworkError: Transport failure.
            ParseError: Response is not a usable XML payload.
        """
        start = time.perf_counter()
        request_xml: Optional[str] = None
        response_xml: Optional[str] = None
        username = self.config.username
        try:
            credential = self.credential
            request_xml = self.builder.build(credential, parameters)
            logger.debug(f"POST {endpoint} as {credential}")
            response_xml = self.transport.send(endpoint, request_xml)
            record = self.parser.parse(response_xml)
        except TCUAPIError as exc:
            elapsed = time.perf_counter() - start
            logger.error(f"Call to {endpoint} failed: {exc}")
            self.monitor.record_call(endpoint, elapsed, failed=True)
            self._audit(endpoint, username, elapsed, request_xml, response_xml, error=str(exc))
            raise

        elapsed = time.perf_counter() - start
        self.monitor.record_call(
            endpoint, elapsed, status_code=record.status_code, failed=record.is_error()
        )
        self._audit(
            endpoint,
            username,
            elapsed,
            request_xml,
            response_xml,
            status_code=record.status_code,
            success=True,
        )
        logger.info(
            f"{endpoint} -> {record.status_code} ({record.message}) in {elapsed * 1000:.1f} ms"
        )
        return record

    def check_status(self, *f4indexnos: str) -> CanonicalResponse:
        """Query admission status for one or more form four index numbers."""
        if not f4indexnos:
            raise ValidationError("Validation failed", ["At least one f4indexno is required"])
        return self.call(CHECK_STATUS_ENDPOINT, {"f4indexno": list(f4indexnos)})

    def _audit(
        self,
        endpoint: str,
        username: str,
        elapsed: float,
        request_xml: Optional[str],
        response_xml: Optional[str],
        status_code: Optional[int] = None,
        success: bool = False,
        error: Optional[str] = None,
    ) -> None:
        dispatch(
            self.audit_sink,
            AuditEntry(
                kind="request",
                endpoint=endpoint,
                username=username,
                success=success,
                status_code=status_code,
                execution_time_ms=elapsed * 1000,
                request_xml=request_xml,
                response_xml=response_xml,
                error_message=error,
            ),
        )
