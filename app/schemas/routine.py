from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.models.enums import LevelEnum, CategoryEnum
from app.schemas.common import CamelModel


class SlotInput(CamelModel):
    exercise_id: int
    # None: индекс назначит сервер (следующий после максимального)
    order_index: Optional[int] = Field(default=None, ge=0)
    sets: Optional[int] = Field(default=3, gt=0)
    reps: Optional[int] = Field(default=None, gt=0)
    duration_seconds: Optional[int] = Field(default=None, gt=0)
    rest_seconds: Optional[int] = Field(default=60, gt=0)


class SlotUpdate(CamelModel):
    """Полная замена слота: частичное обновление не поддерживается."""
    exercise_id: int
    order_index: int = Field(ge=0)
    sets: Optional[int] = Field(default=None, gt=0)
    reps: Optional[int] = Field(default=None, gt=0)
    duration_seconds: Optional[int] = Field(default=None, gt=0)
    rest_seconds: Optional[int] = Field(default=None, gt=0)


class SlotRead(CamelModel):
    id: int
    routine_id: int
    exercise_id: int
    exercise_name: Optional[str] = None
    order_index: int
    sets: Optional[int] = None
    reps: Optional[int] = None
    duration_seconds: Optional[int] = None
    rest_seconds: Optional[int] = None
    created_at: Optional[datetime] = None


class SlotResult(CamelModel):
    index: int
    success: bool
    slot: Optional[SlotRead] = None
    error: Optional[str] = None


class SlotBatchResponse(CamelModel):
    success: bool
    results: List[SlotResult]


class SlotReorderRequest(CamelModel):
    slot_ids: List[int] = Field(min_length=1)


class RoutineBase(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    level: str
    category: str
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    thumbnail_url: Optional[str] = None


class RoutineCreate(RoutineBase):
    exercises: List[SlotInput] = []


class RoutineUpdate(RoutineBase):
    pass


class RoutineRead(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    level: LevelEnum
    category: CategoryEnum
    estimated_duration: Optional[int] = None
    thumbnail_url: Optional[str] = None
    created_user: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoutineDetail(RoutineRead):
    exercises: List[SlotRead] = []
