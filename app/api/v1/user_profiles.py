from datetime import datetime

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_current_user, get_user_profile_repository, get_user_repository
from app.core.exceptions import ConflictError, NotFoundError
from app.core.rbac import ensure_self_or_admin
from app.models.user import User
from app.models.user_profile import UserProfile
from app.repositories.record_repository import UserProfileRepository
from app.repositories.user_repository import UserRepository
from app.schemas.common import MessageResponse
from app.schemas.records import UserProfileCreate, UserProfileRead, UserProfileUpdate

router = APIRouter(tags=["userprofiles"])


async def _get_profile_or_404(repo: UserProfileRepository, user_id: int) -> UserProfile:
    profile = await repo.get_by_id(user_id)
    if profile is None:
        raise NotFoundError("Профиль пользователя", user_id)
    return profile


@router.get("/{user_id}", response_model=UserProfileRead)
async def get_user_profile(
    user_id: int,
    current_user: User = Depends(get_current_user),
    repo: UserProfileRepository = Depends(get_user_profile_repository),
):
    ensure_self_or_admin(current_user, user_id)
    return await _get_profile_or_404(repo, user_id)


@router.post("", response_model=UserProfileRead, status_code=status.HTTP_201_CREATED)
async def create_user_profile(
    payload: UserProfileCreate,
    current_user: User = Depends(get_current_user),
    repo: UserProfileRepository = Depends(get_user_profile_repository),
    users: UserRepository = Depends(get_user_repository),
):
    ensure_self_or_admin(current_user, payload.user_id)
    if not await users.exists(payload.user_id):
        raise NotFoundError("Пользователь", payload.user_id)
    if await repo.exists(payload.user_id):
        raise ConflictError("Профиль пользователя уже существует")

    now = datetime.utcnow()
    profile = UserProfile(**payload.model_dump(), created_at=now, updated_at=now)
    return await repo.create(profile)


@router.put("/{user_id}", response_model=UserProfileRead)
async def update_user_profile(
    user_id: int,
    payload: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    repo: UserProfileRepository = Depends(get_user_profile_repository),
):
    ensure_self_or_admin(current_user, user_id)
    profile = await _get_profile_or_404(repo, user_id)

    for field, value in payload.model_dump().items():
        setattr(profile, field, value)
    profile.updated_at = datetime.utcnow()
    return await repo.update(profile)


@router.put("/{user_id}/upsert", response_model=UserProfileRead)
async def upsert_user_profile(
    user_id: int,
    payload: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    repo: UserProfileRepository = Depends(get_user_profile_repository),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Создать профиль, если его нет, иначе обновить.
    При обновлении незаполненные поля запроса сохранённые значения не затирают.
    """
    ensure_self_or_admin(current_user, user_id)
    if not await users.exists(user_id):
        raise NotFoundError("Пользователь", user_id)

    now = datetime.utcnow()
    profile = await repo.get_by_id(user_id)
    if profile is None:
        profile = UserProfile(user_id=user_id, **payload.model_dump(), created_at=now, updated_at=now)
        return await repo.create(profile)

    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(profile, field, value)
    profile.updated_at = now
    return await repo.update(profile)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user_profile(
    user_id: int,
    current_user: User = Depends(get_current_user),
    repo: UserProfileRepository = Depends(get_user_profile_repository),
):
    ensure_self_or_admin(current_user, user_id)
    profile = await _get_profile_or_404(repo, user_id)
    await repo.delete(profile)
    return MessageResponse(message="Профиль удалён")
