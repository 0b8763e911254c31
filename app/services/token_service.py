import base64
import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

AUTH_PROVIDER = "google"


class TokenService:
    """Выпуск и проверка access-токенов (JWT, HMAC) и непрозрачных refresh-токенов."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        expire_minutes: Optional[int] = None,
        algorithm: Optional[str] = None,
    ):
        self.SECRET_KEY = secret_key or settings.JWT_SECRET_KEY
        self.ISSUER = issuer or settings.JWT_ISSUER
        self.AUDIENCE = audience or settings.JWT_AUDIENCE
        self.ALGORITHM = algorithm or settings.JWT_ALGORITHM
        self.ACCESS_TOKEN_EXPIRE_MINUTES = (
            expire_minutes if expire_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        self.REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

    def access_token_expires_at(self, issued_at: datetime) -> datetime:
        return issued_at + timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES)

    def refresh_token_expires_at(self, issued_at: datetime) -> datetime:
        return issued_at + timedelta(days=self.REFRESH_TOKEN_EXPIRE_DAYS)

    def issue_access_token(self, user_id: int, email: str, role: str, issued_at: Optional[datetime] = None) -> str:
        now = issued_at or datetime.utcnow()
        claims = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": self.access_token_expires_at(now),
            "iss": self.ISSUER,
            "aud": self.AUDIENCE,
            "auth_provider": AUTH_PROVIDER,
        }
        return jwt.encode(claims, self.SECRET_KEY, algorithm=self.ALGORITHM)

    @staticmethod
    def issue_refresh_token() -> str:
        # Без claims: валидность определяется только записью на сервере
        return base64.b64encode(secrets.token_bytes(64)).decode("ascii")

    @staticmethod
    def hash_refresh_token(refresh_token: str) -> str:
        return hashlib.sha256(refresh_token.encode("utf-8")).hexdigest()

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """Проверить подпись, iss, aud и срок действия (без допуска по часам)."""
        try:
            return jwt.decode(
                token,
                self.SECRET_KEY,
                algorithms=[self.ALGORITHM],
                audience=self.AUDIENCE,
                issuer=self.ISSUER,
                options={"leeway": 0},
            )
        except JWTError as exc:
            logger.debug("Access-токен отклонён: %s", exc)
            raise UnauthorizedError("Невалидный токен доступа")

    def validate_access_token(self, token: str) -> bool:
        try:
            self.decode_access_token(token)
        except UnauthorizedError:
            return False
        return True

    @staticmethod
    def extract_user_id(token: str) -> int:
        """
        Достать sub без проверки подписи.

        Только для внутренних нужд (логирование, диагностика):
        решение об авторизации на этом основании принимать нельзя.
        """
        try:
            claims = jwt.get_unverified_claims(token)
            return int(claims.get("sub") or 0)
        except (JWTError, ValueError, TypeError):
            return 0


# Создаем экземпляр сервиса для импорта
token_service = TokenService()
