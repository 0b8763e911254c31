from datetime import datetime
from typing import Optional

from sqlalchemy import select

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.google_id == google_id))
        return result.scalar_one_or_none()

    async def get_by_refresh_token_hash(self, token_hash: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.refresh_token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def create_user(self, user: User) -> User:
        return await self.create(user)

    async def update_user(self, user: User) -> User:
        return await self.update(user)

    async def save_login(self, user: User, token_hash: str, expires: datetime, touch_login: bool = True) -> None:
        """Запомнить refresh-токен и время входа одним коммитом."""
        user.refresh_token_hash = token_hash
        user.refresh_token_expires = expires
        if touch_login:
            user.last_login_at = datetime.utcnow()
        await self.db.commit()

    async def revoke_refresh_token(self, user: User) -> None:
        """Аннулировать refresh-токен пользователя (logout / ротация)."""
        user.refresh_token_hash = None
        user.refresh_token_expires = None
        await self.db.commit()

    async def deactivate(self, user: User) -> User:
        user.is_active = False
        user.refresh_token_hash = None
        user.refresh_token_expires = None
        return await self.update(user)
