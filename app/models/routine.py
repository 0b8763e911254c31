from sqlalchemy import Column, Integer, String, Text, Enum, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.base import Base
from app.models.enums import LevelEnum, CategoryEnum
from datetime import datetime


class Routine(Base):
    __tablename__ = "routines"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    level = Column(Enum(LevelEnum), nullable=False, index=True)
    category = Column(Enum(CategoryEnum), nullable=False, index=True)
    estimated_duration = Column(Integer, nullable=True)  # минуты
    thumbnail_url = Column(String(512), nullable=True)
    # NULL: системная (админская) программа
    created_user = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    slots = relationship(
        "RoutineExercise",
        back_populates="routine",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RoutineExercise.order_index",
    )


class RoutineExercise(Base):
    __tablename__ = "routine_exercises"
    __table_args__ = (
        UniqueConstraint("routine_id", "order_index", name="uq_routine_exercises_routine_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    routine_id = Column(Integer, ForeignKey("routines.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id = Column(Integer, ForeignKey("exercises.id", ondelete="RESTRICT"), nullable=False, index=True)
    order_index = Column(Integer, nullable=False)
    sets = Column(Integer, nullable=True, default=3)
    reps = Column(Integer, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    rest_seconds = Column(Integer, nullable=True, default=60)
    created_at = Column(DateTime, default=datetime.utcnow)

    routine = relationship("Routine", back_populates="slots")
    exercise = relationship("Exercise")
