from app.models.user import User, RoleEnum


def has_role(user: User, *roles: RoleEnum) -> bool:
    return getattr(user.role, "value", user.role) in {role.value for role in roles}


def is_admin(user: User) -> bool:
    return has_role(user, RoleEnum.admin)
