"""
Вход через Google: проверка identity-токена -> upsert пользователя -> выдача токенов.

authenticate() никогда не бросает: любой сбой превращается в AuthResult(success=False)
с видом ошибки, по которому HTTP-слой выбирает статус (401 / 409 / 500).
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import ConflictError, InvalidAssertionError, UnauthorizedError, APIException
from app.models.user import RoleEnum, User
from app.repositories.user_repository import UserRepository
from app.schemas.auth import IdentityClaims
from app.services.google_token_validator import GoogleTokenValidator
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)


class AuthFailure(str, enum.Enum):
    invalid_assertion = "invalid_assertion"
    unauthorized = "unauthorized"
    conflict = "conflict"
    internal = "internal"


@dataclass
class AuthResult:
    success: bool
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    user: Optional[User] = None
    is_new_user: bool = False
    failure: Optional[AuthFailure] = None
    error_message: Optional[str] = None

    @classmethod
    def failed(cls, failure: AuthFailure, message: str) -> "AuthResult":
        return cls(success=False, failure=failure, error_message=message)


def _role_value(role) -> str:
    return getattr(role, "value", role)


class AuthService:
    def __init__(
        self,
        verifier: GoogleTokenValidator,
        tokens: TokenService,
        users: UserRepository,
    ):
        self.verifier = verifier
        self.tokens = tokens
        self.users = users

    async def authenticate(self, identity_token: str) -> AuthResult:
        try:
            claims = await self.verifier.verify(identity_token)
            user, is_new_user = await self._resolve_user(claims)
            if not user.is_active:
                raise UnauthorizedError("Учётная запись деактивирована")
            result = await self._issue_tokens(user, is_new_user)
        except InvalidAssertionError as exc:
            logger.warning("Google аутентификация отклонена: %s", exc.detail)
            return AuthResult.failed(AuthFailure.invalid_assertion, exc.detail)
        except UnauthorizedError as exc:
            return AuthResult.failed(AuthFailure.unauthorized, exc.detail)
        except ConflictError as exc:
            logger.warning("Конфликт при входе через Google: %s", exc.detail)
            return AuthResult.failed(AuthFailure.conflict, exc.detail)
        except APIException as exc:
            logger.error("Ошибка провайдера при входе через Google: %s", exc.detail)
            return AuthResult.failed(AuthFailure.internal, exc.detail)
        except Exception as exc:
            logger.exception("Ошибка при аутентификации через Google")
            message = "Ошибка при обработке входа"
            if settings.DEBUG:
                message = f"{message}: {exc}"
            return AuthResult.failed(AuthFailure.internal, message)

        logger.info("Google вход: %s, новый пользователь: %s", user.email, is_new_user)
        return result

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Ротация: старый refresh-токен перестаёт работать сразу после успешного обмена."""
        user = await self.users.get_by_refresh_token_hash(self.tokens.hash_refresh_token(refresh_token))
        now = datetime.utcnow()
        if (
            user is None
            or not user.is_active
            or user.refresh_token_expires is None
            or user.refresh_token_expires <= now
        ):
            return AuthResult.failed(AuthFailure.unauthorized, "Невалидный или истёкший refresh-токен")
        return await self._issue_tokens(user, is_new_user=False, touch_login=False)

    async def logout(self, user: User) -> None:
        await self.users.revoke_refresh_token(user)

    def validate_access_token(self, token: str) -> bool:
        return self.tokens.validate_access_token(token)

    def extract_user_id(self, token: str) -> int:
        return self.tokens.extract_user_id(token)

    async def _resolve_user(self, claims: IdentityClaims) -> Tuple[User, bool]:
        now = datetime.utcnow()
        display_name = claims.name or claims.email.split("@")[0]

        user = await self.users.get_by_google_id(claims.subject_id)
        if user is not None:
            if user.name != display_name or user.profile_image_url != claims.picture_url:
                user.name = display_name
                user.profile_image_url = claims.picture_url
                user.updated_at = now
                user = await self.users.update_user(user)
                logger.info("Профиль пользователя обновлён из Google: %s", user.email)
            return user, False

        # email уникален: существующую запись без google_id привязываем, а не дублируем
        by_email = await self.users.get_by_email(claims.email)
        if by_email is not None:
            if by_email.google_id:
                raise ConflictError("Email уже привязан к другому Google аккаунту")
            by_email.google_id = claims.subject_id
            by_email.name = display_name
            by_email.profile_image_url = claims.picture_url
            by_email.updated_at = now
            user = await self.users.update_user(by_email)
            logger.info("Google аккаунт привязан к пользователю %s", user.email)
            return user, False

        user = User(
            google_id=claims.subject_id,
            email=claims.email,
            name=display_name,
            profile_image_url=claims.picture_url,
            role=RoleEnum.user,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        try:
            user = await self.users.create_user(user)
        except IntegrityError:
            # параллельный первый вход с тем же GoogleId успел создать запись раньше
            await self.users.rollback()
            existing = await self.users.get_by_google_id(claims.subject_id)
            if existing is None:
                raise ConflictError("Email уже привязан к другому аккаунту")
            logger.info("Пользователь %s создан параллельным входом", existing.email)
            return existing, False
        logger.info("Создан пользователь %s (GoogleId: %s)", user.email, claims.subject_id)
        return user, True

    async def _issue_tokens(self, user: User, is_new_user: bool, touch_login: bool = True) -> AuthResult:
        now = datetime.utcnow()
        access_token = self.tokens.issue_access_token(user.id, user.email, _role_value(user.role), issued_at=now)
        refresh_token = self.tokens.issue_refresh_token()
        await self.users.save_login(
            user,
            self.tokens.hash_refresh_token(refresh_token),
            self.tokens.refresh_token_expires_at(now),
            touch_login=touch_login,
        )
        return AuthResult(
            success=True,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=self.tokens.access_token_expires_at(now),
            user=user,
            is_new_user=is_new_user,
        )
