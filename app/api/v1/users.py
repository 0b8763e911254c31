import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user, get_user_repository
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.rbac import ensure_self_or_admin, require_admin
from app.core.roles import is_admin
from app.core.validators import parse_choice
from app.models.user import RoleEnum, User
from app.repositories.user_repository import UserRepository
from app.schemas.common import MessageResponse, Page
from app.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter(tags=["users"])


async def _get_user_or_404(repo: UserRepository, user_id: int) -> User:
    user = await repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError("Пользователь", user_id)
    return user


@router.get("", response_model=Page[UserRead])
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    role: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    repo: UserRepository = Depends(get_user_repository),
):
    filters = []
    if role is not None:
        filters.append(User.role == parse_choice(RoleEnum, role, "role"))

    users, total = await repo.paginate(page, page_size, filters=filters, order_by=[User.id])
    return Page[UserRead](
        items=[UserRead.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 1,
    )


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    repo: UserRepository = Depends(get_user_repository),
):
    ensure_self_or_admin(current_user, user_id)
    return await _get_user_or_404(repo, user_id)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_admin),
    repo: UserRepository = Depends(get_user_repository),
):
    """Заведение пользователя администратором (GoogleId привяжется при первом входе)"""
    if await repo.get_by_email(payload.email):
        raise ConflictError(f"Пользователь с email {payload.email} уже существует")

    now = datetime.utcnow()
    user = User(
        email=payload.email,
        name=payload.name,
        profile_image_url=payload.profile_image_url,
        role=parse_choice(RoleEnum, payload.role, "role"),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    return await repo.create_user(user)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    repo: UserRepository = Depends(get_user_repository),
):
    ensure_self_or_admin(current_user, user_id)
    # роль и активность меняет только администратор
    if (payload.role is not None or payload.is_active is not None) and not is_admin(current_user):
        raise ForbiddenError("Изменять роль и статус может только администратор")

    user = await _get_user_or_404(repo, user_id)
    if payload.name is not None:
        user.name = payload.name
    if payload.profile_image_url is not None:
        user.profile_image_url = payload.profile_image_url
    if payload.role is not None:
        user.role = parse_choice(RoleEnum, payload.role, "role")
    if payload.is_active is not None:
        user.is_active = payload.is_active
        if not payload.is_active:
            user.refresh_token_hash = None
            user.refresh_token_expires = None
    user.updated_at = datetime.utcnow()
    return await repo.update_user(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    repo: UserRepository = Depends(get_user_repository),
):
    """Мягкое удаление: запись остаётся, вход и refresh перестают работать"""
    user = await _get_user_or_404(repo, user_id)
    await repo.deactivate(user)
    return MessageResponse(message="Пользователь деактивирован")
