from typing import Optional
from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SessionUserOut(BaseModel):
    id: str
    email: Optional[str] = None
    user_type: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: Optional[int] = None
    user: SessionUserOut
    next: str = "/dashboard"


class LoginPageResponse(BaseModel):
    success_message: Optional[str] = None
    next: Optional[str] = None


class SessionResponse(BaseModel):
    authenticated: bool
    user: Optional[SessionUserOut] = None
