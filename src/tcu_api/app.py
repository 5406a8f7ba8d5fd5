"""FastAPI diagnostics service for the TCU marshalling layer.

The service exposes the library's pure operations over HTTP so that envelopes
and responses can be inspected without writing Python:

* ``GET /health`` - liveness probe.
* ``GET /codes`` / ``GET /codes/{code}`` - status code registry lookups.
* ``POST /build`` - build a request envelope from credentials + parameters.
* ``POST /parse`` - decode a response into its canonical record.
* ``POST /validate`` - structural checks on a request or response document.
* ``GET /metrics`` / ``POST /metrics/reset`` - call metrics snapshot.

No request is ever forwarded to the TCU service itself.

Example::

    curl -X POST http://localhost:8000/parse \
         -H "Content-Type: application/json" \
         -d '{"xml": "<Response><StatusCode>200</StatusCode></Response>"}'
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__, response_codes
from .credential import UsernameToken
from .exceptions import TCUAPIError
from .monitoring import get_monitor
from .request_builder import RequestBuilder
from .response_parser import ResponseParser
from .structure_validator import StructureValidator

logger = logging.getLogger(__name__)

app = FastAPI(
    title="TCU API Diagnostics",
    version=__version__,
    description="Build, parse and validate TCU API envelopes and look up status codes",
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.middleware("http")
async def monitor_requests(request: Request, call_next):
    """Record every request in the call monitor."""
    start_time = time.time()
    response = await call_next(request)
    response_time = time.time() - start_time

    endpoint = f"{request.method} {request.url.path}"
    get_monitor().record_call(
        endpoint, response_time, failed=response.status_code >= 400
    )

    response.headers["X-Response-Time"] = f"{response_time:.3f}s"
    response.headers["X-API-Version"] = __version__
    return response


class BuildRequest(BaseModel):
    """Request model for the build endpoint."""

    username: str = Field(..., description="Account username")
    session_token: str = Field(..., description="Session token issued with the account")
    parameters: Dict[str, Any] = Field(
        default_factory=dict, description="Operation parameters (nested dicts / lists)"
    )
    required: List[str] = Field(
        default_factory=list, description="Top-level parameters that must be present"
    )


class BuildResponse(BaseModel):
    xml: str = Field(..., description="Serialized request envelope")


class ParseRequest(BaseModel):
    xml: str = Field(..., description="Raw response document")


class StructureRequest(BaseModel):
    """Request model for the validate endpoint."""

    xml: str = Field(..., description="Document to check")
    direction: Literal["request", "response"] = Field(
        "request", description="Which structural rules to apply"
    )


class StructureResponse(BaseModel):
    valid: bool = Field(..., description="Whether every check passed")
    errors: List[str] = Field(default_factory=list, description="All failed checks")


@app.get("/health")
def health() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/codes")
def list_codes(
    category: Optional[str] = Query(
        None, description="Restrict to one category (e.g. 'duplicate')"
    ),
) -> List[Dict[str, Any]]:
    """List every registered status code with its categories."""
    if category is None:
        codes = response_codes.all_codes()
    elif category in response_codes.CATEGORY_CODES:
        codes = response_codes.CATEGORY_CODES[category]
    else:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")
    return [response_codes.classify(code).to_dict() for code in sorted(codes)]


@app.get("/codes/{code}")
def get_code(code: int) -> Dict[str, Any]:
    """Classification of a single registered status code."""
    if not response_codes.is_known(code):
        raise HTTPException(status_code=404, detail=f"Unknown response code: {code}")
    return response_codes.classify(code).to_dict()


@app.post("/build")
def build(request: BuildRequest) -> BuildResponse:
    """Build a request envelope.

    Example::

        curl -X POST http://localhost:8000/build \
             -H "Content-Type: application/json" \
             -d '{"username": "jdoe", "session_token": "abcdefghij0123",
                  "parameters": {"f4indexno": ["S0123/0001/2023"]}}'
    """
    credential = UsernameToken.create(request.username, request.session_token)
    xml = RequestBuilder().build(credential, request.parameters, request.required)
    return BuildResponse(xml=xml)


@app.post("/parse")
def parse(request: ParseRequest) -> Dict[str, Any]:
    """Decode a response document into its canonical record."""
    return ResponseParser().parse(request.xml).to_dict()


@app.post("/validate")
def validate(request: StructureRequest) -> StructureResponse:
    """Run the structural checks for a request or a response document."""
    validator = StructureValidator()
    if request.direction == "request":
        valid, errors = validator.validate_request(request.xml)
    else:
        valid, errors = validator.validate_response_section(request.xml)
    return StructureResponse(valid=valid, errors=errors)


@app.get("/metrics")
def get_metrics() -> Dict[str, Any]:
    """Call metrics recorded by this process."""
    return get_monitor().get_summary()


@app.post("/metrics/reset")
def reset_metrics() -> Dict[str, str]:
    """Reset all call metrics (useful for testing)."""
    get_monitor().reset_metrics()
    return {
        "message": "All metrics have been reset",
        "timestamp": datetime.now().isoformat(),
    }


@app.exception_handler(TCUAPIError)
async def tcu_error_handler(request: Request, exc: TCUAPIError):
    """Report library errors as 400 responses."""
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    content: Dict[str, Any] = {
        "error": type(exc).__name__,
        "detail": str(exc),
    }
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Custom 404 handler with more helpful error messages."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "detail": (
                str(exc.detail)
                if hasattr(exc, "detail")
                else "The requested resource was not found"
            ),
            "path": str(request.url.path),
        },
    )
