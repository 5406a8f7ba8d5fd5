"""Client configuration.

Values can be passed explicitly or read from the environment with
:meth:`ClientConfig.from_env`:

==============================  =============================  ==========================
Variable                        Field                          Default
==============================  =============================  ==========================
``TCU_API_BASE_URL``            ``base_url``                   ``https://api.tcu.go.tz``
``TCU_API_USERNAME``            ``username``                   ``""``
``TCU_API_SECURITY_TOKEN``      ``security_token``             ``""``
``TCU_API_TIMEOUT``             ``timeout``                    ``30``
``TCU_API_TOKEN_EXPIRY_HOURS``  ``token_expiry_hours``         ``24``
``TCU_API_LOG_LEVEL``           ``log_level``                  ``INFO``
==============================  =============================  ==========================
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List
from urllib.parse import urlparse

DEFAULT_BASE_URL = "https://api.tcu.go.tz"
DEFAULT_TIMEOUT = 30.0
DEFAULT_TOKEN_EXPIRY_HOURS = 24
DEFAULT_USER_AGENT = "TCU-API-Client/1.0"


@dataclass
class ClientConfig:
    """Connection and credential settings.

    Attributes:
        base_url: Scheme + host prefix joined with endpoint paths.
        username: Account name issued by the Commission.
        security_token: Session token issued with the account.
        timeout: Per-request timeout in seconds.
        token_expiry_hours: TTL applied to cached credentials.
        user_agent: ``User-Agent`` header sent by the HTTP transport.
        log_level: Logging level name used by entry points.
    """

    base_url: str = DEFAULT_BASE_URL
    username: str = ""
    security_token: str = ""
    timeout: float = DEFAULT_TIMEOUT
    token_expiry_hours: float = DEFAULT_TOKEN_EXPIRY_HOURS
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create configuration from environment variables."""
        return cls(
            base_url=os.getenv("TCU_API_BASE_URL", DEFAULT_BASE_URL),
            username=os.getenv("TCU_API_USERNAME", ""),
            security_token=os.getenv("TCU_API_SECURITY_TOKEN", ""),
            timeout=float(os.getenv("TCU_API_TIMEOUT", str(DEFAULT_TIMEOUT))),
            token_expiry_hours=float(
                os.getenv("TCU_API_TOKEN_EXPIRY_HOURS", str(DEFAULT_TOKEN_EXPIRY_HOURS))
            ),
            log_level=os.getenv("TCU_API_LOG_LEVEL", "INFO"),
        )

    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.security_token)

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        errors: List[str] = []
        if not self.username:
            errors.append("Username is required")
        if not self.security_token:
            errors.append("Security token is required")
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append("Invalid base URL format")
        if self.timeout <= 0:
            errors.append("Timeout must be greater than 0")
        if self.token_expiry_hours <= 0:
            errors.append("Token expiry must be greater than 0")
        return errors
