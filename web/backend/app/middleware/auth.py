"""Caller identity -- FastAPI dependency for the optional authenticated user.

Authentication happens upstream. A gateway that has verified the caller's
session forwards the user id in the ``X-User-Id`` header; requests without
it are anonymous.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header


async def get_caller_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> Optional[str]:
    """Return the caller's id, or ``None`` for anonymous requests.

    Blank values count as anonymous so they never get aggregated under an
    empty-string identity.
    """
    if x_user_id is None:
        return None
    caller_id = x_user_id.strip()
    return caller_id or None
