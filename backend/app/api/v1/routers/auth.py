# app/api/v1/routers/auth.py
from fastapi import APIRouter, HTTPException, Response, status, Depends
from app.core.security import verify_password, create_access_token, hash_password
from app.api.v1.deps import get_current_user
from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterIn

router = APIRouter(prefix="/auth", tags=["auth"])

def _user_out(u: User) -> dict:
    return {"id": str(u.id), "email": u.email, "name": u.name, "role": u.role}

@router.post("/register")
async def register(body: RegisterIn):
    """
    Register a parent or childminder account.

    Returns:
        dict: {"success": True, "data": user} or {"success": False, "error": {...}}

    Error codes:
        - BAD_REQUEST: Missing email or password
        - EMAIL_EXISTS: Email already registered
    """
    email = (body.email or "").strip().lower()
    if not email or not body.password:
        return {"success": False, "error": {"code": "BAD_REQUEST", "message": "email/password required"}}
    if await User.get_or_none(email=email):
        return {"success": False, "error": {"code": "EMAIL_EXISTS", "message": "Email already registered"}}
    u = await User.create(
        email=email,
        name=(body.name.strip() if body.name else None),
        password_hash=hash_password(body.password),
        role=body.role,
    )
    return {"success": True, "data": _user_out(u)}

@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Verify credentials and issue an access token.

    The token is returned in the body and also set as the HttpOnly
    "accessToken" cookie, which is what browser event streams authenticate with.

    Raises:
        HTTPException (401): AUTH_INVALID_CREDENTIALS
    """
    user = await User.get_or_none(email=(payload.email or "").strip().lower())
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail={"code": "AUTH_INVALID_CREDENTIALS", "message": "Incorrect email or password"})
    token = create_access_token(str(user.id), user.role)
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    return {"success": True, "data": {"user": _user_out(user), "accessToken": token}}

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"success": True, "data": _user_out(user)}

@router.post("/logout")
async def logout(response: Response):
    """
    Clear the access token cookie. The JWT itself stays valid until it expires;
    an open event stream is closed by the client, not by this endpoint.
    """
    response.delete_cookie("accessToken")
    return {"success": True}
