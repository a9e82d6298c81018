from typing import Optional

from fastapi import Header

from spendwise.core.exceptions import UnauthorizedError


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Scope a request to the user named in the X-User-Id header"""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError()
    return x_user_id.strip()
