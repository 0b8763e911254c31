from typing import Any, Dict

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import UnauthorizedError
from app.models.user import User
from app.repositories.exercise_repository import CategoryRepository, ExerciseRepository
from app.repositories.record_repository import (
    BodyRecordRepository,
    UserProfileRepository,
    WorkoutRecordRepository,
)
from app.repositories.routine_repository import RoutineRepository
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.google_token_validator import GoogleTokenValidator, google_token_validator
from app.services.routine_service import RoutineService
from app.services.token_service import TokenService, token_service


security = HTTPBearer()


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    """Фабрика репозитория: инжектируется в эндпоинты через Depends."""
    return UserRepository(db)


def get_routine_repository(db: AsyncSession = Depends(get_db)) -> RoutineRepository:
    return RoutineRepository(db)


def get_exercise_repository(db: AsyncSession = Depends(get_db)) -> ExerciseRepository:
    return ExerciseRepository(db)


def get_category_repository(db: AsyncSession = Depends(get_db)) -> CategoryRepository:
    return CategoryRepository(db)


def get_user_profile_repository(db: AsyncSession = Depends(get_db)) -> UserProfileRepository:
    return UserProfileRepository(db)


def get_body_record_repository(db: AsyncSession = Depends(get_db)) -> BodyRecordRepository:
    return BodyRecordRepository(db)


def get_workout_record_repository(db: AsyncSession = Depends(get_db)) -> WorkoutRecordRepository:
    return WorkoutRecordRepository(db)


def get_token_service() -> TokenService:
    return token_service


def get_identity_verifier() -> GoogleTokenValidator:
    return google_token_validator


def get_auth_service(
        verifier: GoogleTokenValidator = Depends(get_identity_verifier),
        tokens: TokenService = Depends(get_token_service),
        users: UserRepository = Depends(get_user_repository),
) -> AuthService:
    return AuthService(verifier, tokens, users)


def get_routine_service(
        routines: RoutineRepository = Depends(get_routine_repository),
        exercises: ExerciseRepository = Depends(get_exercise_repository),
) -> RoutineService:
    return RoutineService(routines, exercises)


async def get_token_claims(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """Проверенные claims access-токена; 401 при любой ошибке подписи/срока/iss/aud."""
    return tokens.decode_access_token(credentials.credentials)


async def get_current_user(
        claims: Dict[str, Any] = Depends(get_token_claims),
        repo: UserRepository = Depends(get_user_repository),
) -> User:
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedError("Невалидный токен доступа")

    user = await repo.get_by_id(user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Невалидный токен доступа")

    return user
