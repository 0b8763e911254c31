import enum
from sqlalchemy import Column, Integer, String, Enum, Boolean, DateTime
from app.core.base import Base
from datetime import datetime


class RoleEnum(str, enum.Enum):
    user = "user"
    trainer = "trainer"
    admin = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    google_id = Column(String(128), unique=True, nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    profile_image_url = Column(String(512), nullable=True)
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.user, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Хранится только SHA-256 от refresh-токена, сам токен знает лишь клиент
    refresh_token_hash = Column(String(64), unique=True, nullable=True)
    refresh_token_expires = Column(DateTime, nullable=True)
