from fastapi import Depends

from app.core.dependencies import get_current_user
from app.core.exceptions import ForbiddenError
from app.core.roles import has_role, is_admin
from app.models.user import User, RoleEnum


def ensure_self_or_admin(current_user: User, user_id: int) -> None:
    """Свои данные можно всегда, чужие только администратору."""
    if current_user.id != user_id and not is_admin(current_user):
        raise ForbiddenError()


def require_role(*allowed_roles: RoleEnum):
    """Фабрика зависимостей для проверки роли пользователя."""
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_role(current_user, *allowed_roles):
            raise ForbiddenError()
        return current_user
    return role_checker


require_admin = require_role(RoleEnum.admin)
require_trainer = require_role(RoleEnum.trainer, RoleEnum.admin)
