from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.models.user import RoleEnum
from app.schemas.common import CamelModel


class UserRead(CamelModel):
    id: int
    google_id: Optional[str] = None
    email: str
    name: str
    profile_image_url: Optional[str] = None
    role: RoleEnum
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class UserCreate(CamelModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)
    profile_image_url: Optional[str] = None
    role: str = RoleEnum.user.value


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    profile_image_url: Optional[str] = None
    # только для администратора
    role: Optional[str] = None
    is_active: Optional[bool] = None
