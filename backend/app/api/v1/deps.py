# app/api/v1/deps.py
from fastapi import Depends, Header, HTTPException, Request, status
from app.core.security import decode_access_token
from app.core.sse import ConnectionRegistry
from app.models.user import User

async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
):
    """
    FastAPI dependency to get the current authenticated user.

    The JWT is read from:
    1. Authorization header (Bearer token) - API clients
    2. HttpOnly cookie (accessToken) - browsers, including EventSource
       streams, which cannot set headers

    Raises:
        HTTPException (401): AUTH_REQUIRED, AUTH_INVALID_TOKEN or AUTH_USER_NOT_FOUND
    """
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    if not token:
        token = request.cookies.get("accessToken")

    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_REQUIRED")

    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_INVALID_TOKEN")

    user = await User.get_or_none(id=user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="AUTH_USER_NOT_FOUND")
    return user

def require_role(*roles: str):
    """
    Build a dependency that only lets users with one of `roles` through.

    Usage:
        @router.post("/send")
        async def send(user: User = Depends(require_role("parent"))):
            ...

    Raises:
        HTTPException (403): FORBIDDEN_ROLE
    """
    async def _check(current: User = Depends(get_current_user)) -> User:
        if current.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="FORBIDDEN_ROLE")
        return current
    return _check

require_admin = require_role("admin")

def get_connection_registry(request: Request) -> ConnectionRegistry:
    """The process-wide push-channel registry created with the app."""
    return request.app.state.connections
