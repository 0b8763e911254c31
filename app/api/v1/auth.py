import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_auth_service, get_current_user, get_token_claims
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    GoogleLoginRequest,
    RefreshTokenRequest,
    TokenInfo,
    VerifyTokenResponse,
)
from app.schemas.common import MessageResponse
from app.schemas.user import UserRead
from app.services.auth_service import AuthFailure, AuthResult, AuthService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

FAILURE_STATUS = {
    AuthFailure.invalid_assertion: status.HTTP_401_UNAUTHORIZED,
    AuthFailure.unauthorized: status.HTTP_401_UNAUTHORIZED,
    AuthFailure.conflict: status.HTTP_409_CONFLICT,
    AuthFailure.internal: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _failure(status_code: int, message: str) -> JSONResponse:
    body = AuthResponse(success=False, error_message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def _render(result: AuthResult):
    if not result.success:
        return _failure(
            FAILURE_STATUS.get(result.failure, status.HTTP_500_INTERNAL_SERVER_ERROR),
            result.error_message,
        )
    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_at=result.expires_at,
        user=UserRead.model_validate(result.user),
        is_new_user=result.is_new_user,
        success=True,
    )


def _timestamp(value: Any):
    if not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


@router.get("/status")
async def auth_status():
    """Проверка доступности сервиса аутентификации"""
    return {
        "service": "Google Authentication API",
        "status": "running",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
async def login(request: GoogleLoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Вход через Google ID-токен: выдача access + refresh токенов"""
    if not request.identity_token or not request.identity_token.strip():
        return _failure(status.HTTP_400_BAD_REQUEST, "Требуется Google токен")
    return _render(await auth_service.authenticate(request.identity_token))


@router.post("/refresh", response_model=AuthResponse, response_model_exclude_none=True)
async def refresh_token(request: RefreshTokenRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Обмен refresh-токена на новую пару (старый refresh-токен аннулируется)"""
    return _render(await auth_service.refresh(request.refresh_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(
        current_user: User = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.logout(current_user)
    return MessageResponse(message="Выход выполнен")


@router.get("/verify-token", response_model=VerifyTokenResponse)
async def verify_token(claims: Dict[str, Any] = Depends(get_token_claims)):
    """Расшифровка проверенного access-токена"""
    return VerifyTokenResponse(
        user_id=int(claims["sub"]),
        email=claims.get("email"),
        role=claims.get("role"),
        auth_provider=claims.get("auth_provider"),
        token_info=TokenInfo(
            jti=claims.get("jti"),
            issuer=claims.get("iss"),
            audience=claims.get("aud"),
            issued_at=_timestamp(claims.get("iat")),
            expires_at=_timestamp(claims.get("exp")),
        ),
    )


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
