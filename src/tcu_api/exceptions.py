"""Error taxonomy for the TCU API client.

Every error raised by the library derives from :class:`TCUAPIError` so callers
can catch the whole family with one clause while still distinguishing the
failure modes that matter:

* :class:`AuthenticationError` - invalid, expired or malformed credential.
* :class:`BuildError` - a parameter tree could not be serialized or a required
  field is absent.
* :class:`ParseError` - a response is not well-formed XML or carries no payload.
  The raw response text travels with the error for diagnostics.
* :class:`ValidationError` - aggregated structural / field errors. Raised only
  on explicit request (see :meth:`StructureValidator.throw_if_errors`).
* :class:`NetworkError` - transport failure reported by the HTTP layer.

Example:
    >>> try:
    ...     raise ValidationError("Validation failed", ["Missing SOAP Body element"])
    ... except TCUAPIError as exc:
    ...     exc.errors
    ['Missing SOAP Body element']
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class TCUAPIError(Exception):
    """Base class for all client errors.

    Args:
        message: Human readable description.
        code: Numeric code (HTTP-like for authentication / validation errors).
        context: Free-form diagnostic key/value pairs.
    """

    def __init__(
        self,
        message: str = "",
        code: int = 0,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.context: Dict[str, Any] = dict(context or {})


class AuthenticationError(TCUAPIError):
    def __init__(
        self,
        message: str = "Authentication failed",
        code: int = 401,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, context)


class BuildError(TCUAPIError):
    """Raised when a request envelope cannot be produced."""


class ParseError(TCUAPIError):
    """Raised when a response cannot be decoded.

    Attributes:
        raw: The exact response text that failed to parse.
    """

    def __init__(
        self,
        message: str = "Failed to parse XML response",
        raw: str = "",
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, 0, context)
        self.raw = raw


class ValidationError(TCUAPIError):
    """Aggregated validation failure carrying the full error list."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[str]] = None,
        code: int = 422,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, context)
        self.errors: List[str] = list(errors or [])

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return f"{self.message}: {'; '.join(self.errors)}"


class NetworkError(TCUAPIError):
    """Raised by transports when the remote service cannot be reached."""
