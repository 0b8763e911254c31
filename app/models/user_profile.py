from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric
from app.core.base import Base
from datetime import datetime


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    birth_date = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    height_cm = Column(Numeric(5, 2), nullable=True)
    current_weight_kg = Column(Numeric(5, 2), nullable=True)
    fitness_goal = Column(String(100), nullable=True)
    fitness_level = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
