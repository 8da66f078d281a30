"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Header, HTTPException, status


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Identity of the caller.

    Token verification happens upstream (auth proxy / identity provider);
    the verified uid reaches the API in the ``X-User-Id`` header.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    return x_user_id.strip()
