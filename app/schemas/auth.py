from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.user import UserRead


class GoogleLoginRequest(CamelModel):
    # пустое значение проверяет эндпоинт, чтобы ответить в формате AuthResponse
    identity_token: Optional[str] = None


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class IdentityClaims(CamelModel):
    """Проверенные Google-утверждения о пользователе."""
    subject_id: str
    email: str
    name: str = ""
    picture_url: Optional[str] = None
    email_verified: bool = False


class AuthResponse(CamelModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    user: Optional[UserRead] = None
    is_new_user: bool = False
    success: bool
    error_message: Optional[str] = None


class TokenInfo(CamelModel):
    jti: Optional[str] = None
    issuer: Optional[str] = None
    audience: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class VerifyTokenResponse(CamelModel):
    user_id: int
    email: Optional[str] = None
    role: Optional[str] = None
    auth_provider: Optional[str] = None
    is_authenticated: bool = True
    token_info: TokenInfo
