from __future__ import annotations

"""API key checks shared by every tool endpoint."""

import hashlib
import hmac
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from agla.app.settings import settings


@dataclass(frozen=True)
class AuthContext:
    """Caller identity attached to a tool request."""
    api_key: str | None

    @property
    def actor(self) -> str:
        """Short non-reversible caller tag for log lines."""
        if not self.api_key:
            return "anonymous"
        return hashlib.sha256(self.api_key.encode("utf-8")).hexdigest()[:12]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _presented_key(request: Request) -> str | None:
    direct = request.headers.get("x-api-key", "").strip()
    if direct:
        return direct
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def require_api_key(request: Request) -> AuthContext:
    """Resolve the caller, falling back to anonymous when no keys are configured."""
    configured = settings.api_keys
    if not configured:
        if not settings.allow_anonymous:
            raise _unauthorized("API key required")
        return AuthContext(api_key=None)
    presented = _presented_key(request)
    if presented is None or not any(
        hmac.compare_digest(presented, candidate) for candidate in configured
    ):
        raise _unauthorized("Invalid or missing API key")
    return AuthContext(api_key=presented)
