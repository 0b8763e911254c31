from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class UserProfileBase(CamelModel):
    birth_date: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)
    height_cm: Optional[float] = Field(default=None, gt=0)
    current_weight_kg: Optional[float] = Field(default=None, gt=0)
    fitness_goal: Optional[str] = None
    fitness_level: Optional[str] = None


class UserProfileCreate(UserProfileBase):
    user_id: int


class UserProfileUpdate(UserProfileBase):
    pass


class UserProfileRead(UserProfileBase):
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BodyRecordBase(CamelModel):
    recorded_date: date
    weight_kg: Optional[float] = Field(default=None, gt=0)
    body_fat_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    muscle_mass_kg: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = None


class BodyRecordCreate(BodyRecordBase):
    pass


class BodyRecordUpdate(BodyRecordBase):
    pass


class BodyRecordRead(BodyRecordBase):
    id: int
    user_id: int
    created_at: Optional[datetime] = None


class WorkoutRecordBase(CamelModel):
    workout_date: date
    exercise_id: Optional[int] = None
    sets_data: Optional[Any] = None
    total_duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class WorkoutRecordCreate(WorkoutRecordBase):
    pass


class WorkoutRecordUpdate(WorkoutRecordBase):
    pass


class WorkoutRecordRead(WorkoutRecordBase):
    id: int
    user_id: int
    created_at: Optional[datetime] = None
