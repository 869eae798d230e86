from __future__ import annotations

from fastapi import HTTPException, Request, status

USER_HEADER = "X-User-Id"
MAX_USER_ID_LENGTH = 128


def get_user_id(request: Request) -> str | None:
    value = request.headers.get(USER_HEADER)
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_user(request: Request) -> str:
    """FastAPI dependency returning the caller id set by the upstream gateway."""
    user_id = get_user_id(request)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"{USER_HEADER} header required")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User id too long")
    return user_id
