"""Request identity — supplied by the upstream identity provider and trusted as-is."""

from fastapi import Header, HTTPException

ADMIN_ROLE = "admin"


def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def require_admin(x_user_role: str | None = Header(default=None)) -> None:
    if x_user_role != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
