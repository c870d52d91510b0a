# app/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
"""
from typing import Literal, Optional
from pydantic import BaseModel

class LoginRequest(BaseModel):
    email: str
    password: str  # Plain text, verified against the stored hash

class RegisterIn(BaseModel):
    """
    Self-service sign-up. Administrators are never created through this
    endpoint; see core.bootstrap.
    """
    email: str
    password: str
    name: Optional[str] = None
    role: Literal["parent", "childminder"] = "parent"
