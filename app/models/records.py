from sqlalchemy import Column, Integer, Text, Date, DateTime, ForeignKey, Numeric, JSON
from app.core.base import Base
from datetime import datetime


class BodyRecord(Base):
    __tablename__ = "body_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recorded_date = Column(Date, nullable=False)
    weight_kg = Column(Numeric(5, 2), nullable=True)
    body_fat_percentage = Column(Numeric(4, 1), nullable=True)
    muscle_mass_kg = Column(Numeric(5, 2), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WorkoutRecord(Base):
    __tablename__ = "workout_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    workout_date = Column(Date, nullable=False)
    exercise_id = Column(Integer, ForeignKey("exercises.id", ondelete="SET NULL"), nullable=True)
    # произвольная структура подходов: [{"reps": 10, "weight": 40}, ...]
    sets_data = Column(JSON, nullable=True)
    total_duration_minutes = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
