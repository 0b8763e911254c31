from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.models.enums import LevelEnum, CategoryEnum
from app.schemas.common import CamelModel


class ExerciseBase(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    level: str
    category: str
    category_detail: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    primary_category_id: Optional[int] = None


class ExerciseCreate(ExerciseBase):
    pass


class ExerciseUpdate(ExerciseBase):
    is_active: bool = True


class ExerciseStatusResponse(CamelModel):
    exercise_id: int
    is_active: bool
    message: str


class ExerciseRead(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    level: LevelEnum
    category: CategoryEnum
    category_detail: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    primary_category_id: Optional[int] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryCreate(CamelModel):
    parent_category_id: Optional[int] = None
    category_name: str = Field(min_length=1, max_length=100)
    category_code: str = Field(min_length=1, max_length=50)
    display_order: Optional[int] = None


class CategoryUpdate(CategoryCreate):
    pass


class CategoryOrderItem(CamelModel):
    category_id: int
    display_order: int


class CategoryRead(CamelModel):
    id: int
    parent_category_id: Optional[int] = None
    category_name: str
    category_code: str
    display_order: Optional[int] = None
    sub_categories: List["CategoryRead"] = []
    exercises: Optional[List[ExerciseRead]] = None


CategoryRead.model_rebuild()
