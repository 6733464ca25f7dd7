from __future__ import annotations

import os

from fastapi import Depends, Header, HTTPException, status


def _load_api_key() -> str | None:
    key = os.getenv("ADMIN_API_KEY")
    return key.strip() if key else None


def require_api_key(x_api_key: str | None = Header(default=None)) -> str | None:
    """
    Check the `X-API-KEY` header when a key is configured.

    Without ADMIN_API_KEY the check is skipped (local development).
    """

    secret = _load_api_key()
    if secret is None:
        return None

    if x_api_key is None or x_api_key != secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Api-Key"},
        )
    return x_api_key


def optional_api_key(api_key: str | None = Depends(require_api_key)) -> None:
    """Runs the check without returning anything."""
