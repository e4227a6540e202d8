"""FastAPI authentication dependencies.

Credentials are verified by the auth gateway in front of this service; it
forwards the authenticated user's id in the ``X-User-Id`` header.
"""

from __future__ import annotations

from fastapi import Header, HTTPException

USER_ID_HEADER = "X-User-Id"


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """Return the caller's user id. Raises 401 when the gateway did not set one."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()
