# nabolag/auth.py
"""Shared authentication dependencies."""

import secrets

from fastapi import Header, HTTPException

from nabolag.config import get_settings


def require_admin_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    """Validate admin API key. Fails closed if ADMIN_API_KEY is not set."""
    expected_key = get_settings().ADMIN_API_KEY

    if not expected_key:
        raise HTTPException(
            status_code=500,
            detail="Server misconfiguration: admin authentication not configured",
        )

    if not x_api_key or not secrets.compare_digest(x_api_key, expected_key):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key",
        )


def require_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Requesting principal, resolved by the session layer in front of this API.

    The API trusts the header; authentication happens upstream.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=401,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()
