"""
app/api/dependencies.py

Shared FastAPI dependencies for request authorization.
"""

from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, Query, status

from app.config import get_api_settings


def require_crawl_token(
    authorization: str | None = Header(default=None),
    x_crawl_token: str | None = Header(default=None),
    token: str | None = Query(default=None, description="Crawl trigger token"),
) -> None:
    """
    Check the crawl trigger token when CRAWL_AUTH_TOKEN is configured.

    Accepts `Authorization: Bearer <token>`, `X-Crawl-Token` or `?token=`.
    """

    expected = get_api_settings().crawl_auth_token
    if not expected:
        return

    provided = x_crawl_token or token
    if authorization and authorization.lower().startswith("bearer "):
        provided = authorization[7:].strip()

    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing crawl token.",
        )
