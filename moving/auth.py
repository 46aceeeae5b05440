"""Authentication dependency for the admin booking endpoints.

Behavior matrix:
  ADMIN_API_KEY set + valid token   → allow
  ADMIN_API_KEY set + wrong/missing → 401 Unauthorized
  ADMIN_API_KEY empty               → allow (startup logs a warning)

The settings come from ``request.app.state.settings`` so every app
instance carries its own configuration.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

log = logging.getLogger("moving.auth")

_bearer_scheme = HTTPBearer(auto_error=False)


async def require_admin_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> None:
    """FastAPI dependency — protect admin endpoints with a bearer token."""
    key = request.app.state.settings.admin_api_key

    if not key:
        return

    if credentials is None or not secrets.compare_digest(credentials.credentials, key):
        log.warning("Rejected admin request to %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
