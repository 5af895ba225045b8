from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    """Acting user from the ``X-User-Id`` header set by the auth gateway."""

    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized: missing user.")
    try:
        return int(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Unauthorized: invalid user.") from exc


def require_admin(x_user_role: Optional[str] = Header(default=None)) -> str:
    """Admin-only routes; the gateway sets ``X-User-Role`` from the verified token."""

    if not x_user_role:
        raise HTTPException(status_code=401, detail="Unauthorized: missing role.")
    if x_user_role.strip().lower() != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return x_user_role
