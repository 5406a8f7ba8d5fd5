"""Username/session-token credentials and their management.

A :class:`UsernameToken` is the validated ``(username, session_token)`` pair
embedded in every request header. It is immutable; expiry is recomputed from
``created_at`` and a caller supplied TTL on each check and never stored.

:class:`AuthenticationManager` wraps token creation with the stricter username
alphabet enforced at the authentication boundary, logs each attempt, and
optionally forwards the attempt to an audit sink.

Example:
    >>> token = UsernameToken.create("jdoe", "abcdefghij0123")
    >>> token.is_expired(ttl_hours=24)
    False
    >>> token.to_auth_fragment().to_python()
    {'Username': 'jdoe', 'SessionToken': 'abcdefghij0123'}
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from .audit import AuditEntry, AuditSink, dispatch
from .exceptions import AuthenticationError
from .values import MapValue, Scalar

if TYPE_CHECKING:  # pragma: no cover
    from .config import ClientConfig

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 50
TOKEN_MIN_LENGTH = 10
TOKEN_MAX_LENGTH = 255
DEFAULT_TTL_HOURS = 24

_USERNAME_ALPHABET = re.compile(r"^[a-zA-Z0-9_-]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_credential_fields(username: str, session_token: str) -> None:
    """Raise :class:`AuthenticationError` if either field breaks its limits."""
    if not username:
        raise AuthenticationError("Username cannot be empty")
    if len(username) > USERNAME_MAX_LENGTH:
        raise AuthenticationError(
            f"Username cannot exceed {USERNAME_MAX_LENGTH} characters"
        )
    if not session_token:
        raise AuthenticationError("Session token cannot be empty")
    if len(session_token) < TOKEN_MIN_LENGTH:
        raise AuthenticationError(
            f"Session token must be at least {TOKEN_MIN_LENGTH} characters"
        )
    if len(session_token) > TOKEN_MAX_LENGTH:
        raise AuthenticationError(
            f"Session token cannot exceed {TOKEN_MAX_LENGTH} characters"
        )


@dataclass(frozen=True)
class UsernameToken:
    """Validated credential pair.

    Attributes:
        username: 1-50 characters.
        session_token: 10-255 characters.
        created_at: Timezone-aware creation instant (UTC).

    Raises:
        AuthenticationError: On construction when a limit is violated.
    """

    username: str
    session_token: str
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        check_credential_fields(self.username, self.session_token)
        if self.created_at.tzinfo is None:
            # Naive timestamps are taken as UTC.
            object.__setattr__(
                self, "created_at", self.created_at.replace(tzinfo=timezone.utc)
            )

    @classmethod
    def create(
        cls, username: str, session_token: str, created_at: Optional[datetime] = None
    ) -> "UsernameToken":
        if created_at is None:
            return cls(username, session_token)
        return cls(username, session_token, created_at)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UsernameToken":
        if "username" not in data or "session_token" not in data:
            raise AuthenticationError("Username and session_token are required")
        return cls.create(str(data["username"]), str(data["session_token"]))

    def check(self) -> None:
        """Re-assert the field limits (useful after deserialization)."""
        check_credential_fields(self.username, self.session_token)

    def is_valid(self) -> bool:
        return bool(self.username) and bool(self.session_token)

    def is_expired(
        self, ttl_hours: float = DEFAULT_TTL_HOURS, now: Optional[datetime] = None
    ) -> bool:
        """Return True once ``ttl_hours`` have elapsed since creation."""
        current = now or _utcnow()
        return current > self.created_at + timedelta(hours=ttl_hours)

    def to_auth_fragment(self) -> MapValue:
        """Header fragment consumed by the request builder (unescaped)."""
        return MapValue(
            {
                "Username": Scalar(self.username),
                "SessionToken": Scalar(self.session_token),
            }
        )

    def fingerprint(self) -> str:
        """Deterministic, non-cryptographic hash for cache keys and log correlation."""
        return hashlib.md5(
            f"{self.username}:{self.session_token}".encode("utf-8")
        ).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "session_token": self.session_token,
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            "is_valid": self.is_valid(),
            "is_expired": self.is_expired(),
        }

    def __str__(self) -> str:
        return (
            f"UsernameToken[username={self.username}, "
            f"token={self.session_token[:10]}..., "
            f"created={self.created_at.strftime('%Y-%m-%d %H:%M:%S')}]"
        )

    def __repr__(self) -> str:
        return str(self)


class AuthenticationManager:
    """Create, validate and refresh credentials from a :class:`ClientConfig`.

    Every attempt is logged; when ``audit_sink`` is provided an
    :class:`~tcu_api.audit.AuditEntry` of kind ``"authentication"`` is also
    dispatched (failures in the sink never affect the caller).

    Example::

        manager = AuthenticationManager(ClientConfig(username="jdoe", security_token="abcdefghij0123"))
        token = manager.create_token_from_config()
        assert manager.validate_token(token)
    """

    def __init__(
        self, config: "ClientConfig", audit_sink: Optional[AuditSink] = None
    ) -> None:
        self.config = config
        self.audit_sink = audit_sink

    @property
    def token_expiry_hours(self) -> float:
        return self.config.token_expiry_hours

    def has_credentials(self) -> bool:
        return self.config.has_credentials()

    def create_token(self, username: str, session_token: str) -> UsernameToken:
        start = time.perf_counter()
        try:
            if username and not _USERNAME_ALPHABET.match(username):
                raise AuthenticationError("Username contains invalid characters")
            token = UsernameToken.create(username, session_token)
        except AuthenticationError as exc:
            self._log_attempt(username, "create", False, start, str(exc))
            raise AuthenticationError(
                f"Failed to create authentication token: {exc}"
            ) from exc
        self._log_attempt(username, "create", True, start)
        return token

    def validate_token(self, token: UsernameToken) -> bool:
        """Return False (never raise) for structurally invalid or expired tokens."""
        start = time.perf_counter()
        if not token.is_valid():
            self._log_attempt(token.username, "validate", False, start, "Invalid token structure")
            return False
        if token.is_expired(self.token_expiry_hours):
            self._log_attempt(token.username, "validate", False, start, "Token has expired")
            return False
        self._log_attempt(token.username, "validate", True, start)
        return True

    def create_token_from_config(self) -> UsernameToken:
        if not self.has_credentials():
            raise AuthenticationError("Authentication credentials not configured")
        return self.create_token(self.config.username, self.config.security_token)

    def refresh_token(self) -> UsernameToken:
        start = time.perf_counter()
        try:
            token = self.create_token_from_config()
        except AuthenticationError as exc:
            self._log_attempt(self.config.username, "refresh", False, start, str(exc))
            raise AuthenticationError(
                f"Failed to refresh authentication token: {exc}"
            ) from exc
        self._log_attempt(token.username, "refresh", True, start)
        return token

    def _log_attempt(
        self,
        username: str,
        operation: str,
        success: bool,
        start: float,
        error_message: Optional[str] = None,
    ) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if success:
            logger.info(
                f"Authentication {operation} successful for {username!r} ({elapsed_ms:.2f} ms)"
            )
        else:
            logger.warning(
                f"Authentication {operation} failed for {username!r}: {error_message}"
            )
        if self.audit_sink is not None:
            dispatch(
                self.audit_sink,
                AuditEntry(
                    kind="authentication",
                    endpoint=operation,
                    username=username,
                    success=success,
                    execution_time_ms=elapsed_ms,
                    error_message=error_message,
                ),
            )
