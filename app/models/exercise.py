from sqlalchemy import Column, Integer, String, Text, Enum, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.core.base import Base
from app.models.enums import LevelEnum, CategoryEnum
from datetime import datetime


class ExerciseCategory(Base):
    __tablename__ = "exercise_categories"

    id = Column(Integer, primary_key=True, index=True)
    parent_category_id = Column(
        Integer, ForeignKey("exercise_categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    category_name = Column(String(100), nullable=False)
    category_code = Column(String(50), unique=True, nullable=False)
    display_order = Column(Integer, nullable=True)

    parent = relationship("ExerciseCategory", remote_side=[id], back_populates="children")
    children = relationship("ExerciseCategory", back_populates="parent")
    exercises = relationship("Exercise", back_populates="primary_category")


class Exercise(Base):
    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    level = Column(Enum(LevelEnum), nullable=False, index=True)
    category = Column(Enum(CategoryEnum), nullable=False, index=True)
    category_detail = Column(String(200), nullable=True)
    image_url = Column(String(512), nullable=True)
    video_url = Column(String(512), nullable=True)
    primary_category_id = Column(
        Integer, ForeignKey("exercise_categories.id", ondelete="SET NULL"), nullable=True
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    primary_category = relationship("ExerciseCategory", back_populates="exercises")
