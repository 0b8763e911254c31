"""
Общие фикстуры для тестов FitnessPT backend.

Стратегия:
- Переменные окружения выставляются до импорта app.*: Settings читаются при импорте.
- БД: in-memory SQLite (aiosqlite + StaticPool), схема создаётся заново на каждый тест.
- Тестовое FastAPI-приложение создаётся без startup-событий.
- Для auth-эндпоинтов UserRepository и Google-валидатор заменяются на AsyncMock.
- Для остальных эндпоинтов get_db отдаёт сессии тестовой БД, авторизация настоящим JWT.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("JWT_ISSUER", "fitnesspt-test")
os.environ.setdefault("JWT_AUDIENCE", "fitnesspt-clients")

import pytest
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import create_async_engine
from datetime import datetime
from typing import AsyncGenerator

from app.api.router import api_router
from app.core.base import Base
from app.core.db import build_engine, build_sessionmaker, get_db
from app.core.dependencies import get_identity_verifier, get_user_repository
from app.core.exceptions import register_exception_handlers
from app.models.enums import CategoryEnum, LevelEnum
from app.models.exercise import Exercise
from app.models.user import User, RoleEnum
from app.repositories.user_repository import UserRepository
from app.services.google_token_validator import GoogleTokenValidator
from app.services.token_service import token_service

import app.models  # noqa: F401


# ---------------------------------------------------------------------------
# Вспомогательные функции
# ---------------------------------------------------------------------------

def create_test_app() -> FastAPI:
    """Тестовое FastAPI-приложение без startup-событий."""
    test_app = FastAPI(title="FitnessPT Test App")
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix="/api/v1")
    return test_app


def make_auth_headers(user: User) -> dict:
    """Заголовки авторизации с валидным JWT для указанного пользователя."""
    access_token = token_service.issue_access_token(user.id, user.email, user.role.value)
    return {"Authorization": f"Bearer {access_token}"}


def make_user(user_id: int, email: str, role: RoleEnum = RoleEnum.user, **overrides) -> User:
    now = datetime.utcnow()
    fields = dict(
        id=user_id,
        google_id=f"google-{user_id}",
        email=email,
        name=email.split("@")[0],
        role=role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return User(**fields)


# ---------------------------------------------------------------------------
# Фикстуры пользователей (без БД)
# ---------------------------------------------------------------------------

@pytest.fixture
def user_fixture() -> User:
    """Обычный пользователь с ролью 'user'."""
    return make_user(1, "test@example.com")


@pytest.fixture
def admin_fixture() -> User:
    """Администратор с ролью 'admin'."""
    return make_user(2, "admin@example.com", RoleEnum.admin)


# ---------------------------------------------------------------------------
# База данных
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_engine():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_sessionmaker(db_engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """
    Файловая SQLite с обычным пулом: у каждой сессии своё соединение и своя транзакция.
    Нужна для параллельных сценариев, которые на StaticPool делили бы одно соединение.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fitnesspt.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
async def db_users(db_session):
    """Пользователь, второй пользователь и администратор, сохранённые в БД."""
    users = {
        "user": make_user(1, "test@example.com"),
        "other": make_user(2, "other@example.com"),
        "admin": make_user(3, "admin@example.com", RoleEnum.admin),
    }
    db_session.add_all(users.values())
    await db_session.commit()
    return users


@pytest.fixture
async def db_exercises(db_session):
    """Справочник упражнений: ключ словаря равен id упражнения."""
    now = datetime.utcnow()
    exercises = [
        Exercise(id=5, name="Жим лёжа", level=LevelEnum.beginner, category=CategoryEnum.upper_body,
                 is_active=True, created_at=now, updated_at=now),
        Exercise(id=7, name="Отжимания на брусьях", level=LevelEnum.beginner, category=CategoryEnum.upper_body,
                 is_active=True, created_at=now, updated_at=now),
        Exercise(id=9, name="Жим гантелей сидя", level=LevelEnum.intermediate, category=CategoryEnum.upper_body,
                 is_active=True, created_at=now, updated_at=now),
        Exercise(id=11, name="Приседания", level=LevelEnum.beginner, category=CategoryEnum.lower_body,
                 is_active=True, created_at=now, updated_at=now),
    ]
    db_session.add_all(exercises)
    await db_session.commit()
    return {exercise.id: exercise for exercise in exercises}


# ---------------------------------------------------------------------------
# Фикстуры для зависимостей
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_repo() -> AsyncMock:
    """Мокированный UserRepository для auth-эндпоинтов."""
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_verifier() -> AsyncMock:
    """Мокированный Google-валидатор: verify() настраивается в тесте."""
    return AsyncMock(spec=GoogleTokenValidator)


# ---------------------------------------------------------------------------
# HTTP-клиенты
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(mock_repo, mock_verifier) -> AsyncGenerator[AsyncClient, None]:
    """
    Клиент для auth-эндпоинтов: get_user_repository → mock_repo,
    get_identity_verifier → mock_verifier.
    """
    app = create_test_app()
    app.dependency_overrides[get_user_repository] = lambda: mock_repo
    app.dependency_overrides[get_identity_verifier] = lambda: mock_verifier
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def db_client(session_factory, mock_verifier) -> AsyncGenerator[AsyncClient, None]:
    """
    Клиент поверх тестовой SQLite: каждый запрос получает свою сессию.
    Авторизация через make_auth_headers().
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app = create_test_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: mock_verifier
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
