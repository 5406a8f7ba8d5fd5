"""TCU API Client
==================

Marshalling layer for the Tanzania Commission for Universities (TCU)
admissions web service: authenticated SOAP-style request envelopes on the way
out, canonical response records on the way back.

Key capabilities
----------------
- Validated :class:`~tcu_api.credential.UsernameToken` credentials with
  TTL-based expiry and an :class:`~tcu_api.credential.AuthenticationManager`.
- Deterministic request envelopes from a recursive value tree
  (:class:`~tcu_api.request_builder.RequestBuilder`).
- Tolerant response decoding into
  :class:`~tcu_api.response_parser.CanonicalResponse` records.
- Immutable status code registry with semantic categories
  (:func:`~tcu_api.response_codes.classify`).
- Accumulating structural checks
  (:class:`~tcu_api.structure_validator.StructureValidator`).
- An httpx-based :class:`~tcu_api.client.TCUClient`, call metrics, audit
  hooks, a diagnostics service and a command line tool.

Minimal quick start
-------------------
>>> from tcu_api import RequestBuilder, ResponseParser, UsernameToken
>>> token = UsernameToken.create("jdoe", "abcdefghij0123")
>>> xml = RequestBuilder().build(token, {"f4indexno": ["S0123/0001/2023"]})
>>> ResponseParser().parse("<R><StatusCode>200</StatusCode></R>").is_success()
True

FastAPI application instance (for ASGI servers like uvicorn):
>>> from tcu_api.app import app  # noqa: F401

Public surface
--------------
Only a curated subset is exported at the package level; the remaining modules
(``field_validation``, ``monitoring``, ``audit``) can be imported explicitly.
"""

__version__ = "0.1.0"

from .client import TCUClient
from .config import ClientConfig
from .credential import AuthenticationManager, UsernameToken
from .exceptions import (
    AuthenticationError,
    BuildError,
    NetworkError,
    ParseError,
    TCUAPIError,
    ValidationError,
)
from .request_builder import RequestBuilder
from .response_codes import ResponseCode, classify
from .response_parser import CanonicalResponse, ResponseParser
from .structure_validator import StructureValidator
from .values import ListValue, MapValue, Scalar

__all__ = [
    "AuthenticationError",
    "AuthenticationManager",
    "BuildError",
    "CanonicalResponse",
    "ClientConfig",
    "ListValue",
    "MapValue",
    "NetworkError",
    "ParseError",
    "RequestBuilder",
    "ResponseCode",
    "ResponseParser",
    "Scalar",
    "StructureValidator",
    "TCUAPIError",
    "TCUClient",
    "UsernameToken",
    "ValidationError",
    "classify",
]
