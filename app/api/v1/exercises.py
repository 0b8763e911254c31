import math
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user, get_exercise_repository, get_category_repository
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.rbac import require_admin, require_trainer
from app.core.validators import parse_choice
from app.models.enums import CategoryEnum, LevelEnum
from app.models.exercise import Exercise, ExerciseCategory
from app.models.user import User
from app.repositories.exercise_repository import CategoryRepository, ExerciseRepository
from app.schemas.common import MessageResponse, Page
from app.schemas.exercise import (
    CategoryCreate,
    CategoryOrderItem,
    CategoryRead,
    CategoryUpdate,
    ExerciseCreate,
    ExerciseRead,
    ExerciseStatusResponse,
    ExerciseUpdate,
)

router = APIRouter(tags=["exercises"])
categories_router = APIRouter(tags=["categories"])


async def _check_category(categories: CategoryRepository, category_id: Optional[int]) -> None:
    if category_id is not None and not await categories.exists(category_id):
        raise NotFoundError("Категория", category_id)


def _apply_exercise(exercise: Exercise, payload: ExerciseCreate) -> None:
    exercise.name = payload.name
    exercise.description = payload.description
    exercise.level = parse_choice(LevelEnum, payload.level, "level")
    exercise.category = parse_choice(CategoryEnum, payload.category, "category")
    exercise.category_detail = payload.category_detail
    exercise.image_url = payload.image_url
    exercise.video_url = payload.video_url
    exercise.primary_category_id = payload.primary_category_id


# ==========================
# /exercises
# ==========================

@router.get("", response_model=Page[ExerciseRead])
async def list_exercises(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    level: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    repo: ExerciseRepository = Depends(get_exercise_repository),
):
    filters = []
    if level is not None:
        filters.append(Exercise.level == parse_choice(LevelEnum, level, "level"))
    if category is not None:
        filters.append(Exercise.category == parse_choice(CategoryEnum, category, "category"))

    items, total = await repo.paginate(page, page_size, filters=filters, order_by=[Exercise.id])
    return Page[ExerciseRead](
        items=[ExerciseRead.model_validate(e) for e in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 1,
    )


@router.get("/{exercise_id}", response_model=ExerciseRead)
async def get_exercise(
    exercise_id: int,
    current_user: User = Depends(get_current_user),
    repo: ExerciseRepository = Depends(get_exercise_repository),
):
    exercise = await repo.get_by_id(exercise_id)
    if exercise is None:
        raise NotFoundError("Упражнение", exercise_id)
    return exercise


@router.post("", response_model=ExerciseRead, status_code=status.HTTP_201_CREATED)
async def create_exercise(
    payload: ExerciseCreate,
    current_user: User = Depends(require_trainer),
    repo: ExerciseRepository = Depends(get_exercise_repository),
    categories: CategoryRepository = Depends(get_category_repository),
):
    await _check_category(categories, payload.primary_category_id)
    now = datetime.utcnow()
    exercise = Exercise(is_active=True, created_at=now, updated_at=now)
    _apply_exercise(exercise, payload)
    return await repo.create(exercise)


@router.put("/{exercise_id}", response_model=ExerciseRead)
async def update_exercise(
    exercise_id: int,
    payload: ExerciseUpdate,
    current_user: User = Depends(require_trainer),
    repo: ExerciseRepository = Depends(get_exercise_repository),
    categories: CategoryRepository = Depends(get_category_repository),
):
    exercise = await repo.get_by_id(exercise_id)
    if exercise is None:
        raise NotFoundError("Упражнение", exercise_id)
    await _check_category(categories, payload.primary_category_id)

    _apply_exercise(exercise, payload)
    exercise.is_active = payload.is_active
    exercise.updated_at = datetime.utcnow()
    return await repo.update(exercise)


@router.patch("/{exercise_id}/toggle-status", response_model=ExerciseStatusResponse)
async def toggle_exercise_status(
    exercise_id: int,
    current_user: User = Depends(require_trainer),
    repo: ExerciseRepository = Depends(get_exercise_repository),
):
    """Включить / выключить упражнение без полной замены полей"""
    exercise = await repo.get_by_id(exercise_id)
    if exercise is None:
        raise NotFoundError("Упражнение", exercise_id)

    exercise.is_active = not exercise.is_active
    exercise.updated_at = datetime.utcnow()
    exercise = await repo.update(exercise)
    return ExerciseStatusResponse(
        exercise_id=exercise.id,
        is_active=exercise.is_active,
        message="Упражнение активировано" if exercise.is_active else "Упражнение деактивировано",
    )


@router.delete("/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exercise(
    exercise_id: int,
    current_user: User = Depends(require_admin),
    repo: ExerciseRepository = Depends(get_exercise_repository),
):
    exercise = await repo.get_by_id(exercise_id)
    if exercise is None:
        raise NotFoundError("Упражнение", exercise_id)
    # слоты программ ссылаются на упражнение: удалять молча нельзя
    if await repo.is_referenced_by_routines(exercise_id):
        raise ConflictError("Упражнение используется в программах, удаление запрещено")
    await repo.delete(exercise)


# ==========================
# /categories
# ==========================

def to_category_read(category: ExerciseCategory, include_exercises: bool, depth: int = 0) -> CategoryRead:
    read = CategoryRead(
        id=category.id,
        parent_category_id=category.parent_category_id,
        category_name=category.category_name,
        category_code=category.category_code,
        display_order=category.display_order,
    )
    if depth == 0:
        children = sorted(category.children, key=lambda c: (c.display_order is None, c.display_order, c.category_name))
        read.sub_categories = [to_category_read(child, include_exercises, depth + 1) for child in children]
    if include_exercises:
        read.exercises = [ExerciseRead.model_validate(e) for e in category.exercises if e.is_active]
    return read


@categories_router.get("", response_model=List[CategoryRead], response_model_exclude_none=True)
async def list_categories(
    include_exercises: bool = Query(False, alias="includeExercises"),
    current_user: User = Depends(get_current_user),
    repo: CategoryRepository = Depends(get_category_repository),
):
    """Дерево категорий: верхний уровень с подкатегориями"""
    categories = await repo.list_tree(include_exercises)
    return [to_category_read(c, include_exercises) for c in categories]


@categories_router.get("/flat", response_model=List[CategoryRead], response_model_exclude_none=True)
async def list_categories_flat(
    current_user: User = Depends(get_current_user),
    repo: CategoryRepository = Depends(get_category_repository),
):
    categories = await repo.list(order_by=[ExerciseCategory.display_order, ExerciseCategory.category_name])
    return [
        CategoryRead(
            id=c.id,
            parent_category_id=c.parent_category_id,
            category_name=c.category_name,
            category_code=c.category_code,
            display_order=c.display_order,
        )
        for c in categories
    ]


@categories_router.get("/{category_id}", response_model=CategoryRead, response_model_exclude_none=True)
async def get_category(
    category_id: int,
    include_exercises: bool = Query(False, alias="includeExercises"),
    current_user: User = Depends(get_current_user),
    repo: CategoryRepository = Depends(get_category_repository),
):
    category = await repo.get_with_children(category_id, include_exercises)
    if category is None:
        raise NotFoundError("Категория", category_id)
    return to_category_read(category, include_exercises)


@categories_router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    current_user: User = Depends(require_admin),
    repo: CategoryRepository = Depends(get_category_repository),
):
    await _check_category(repo, payload.parent_category_id)
    if await repo.get_by_code(payload.category_code):
        raise ConflictError(f"Категория с кодом {payload.category_code} уже существует")

    category = await repo.create(ExerciseCategory(**payload.model_dump()))
    return CategoryRead(
        id=category.id,
        parent_category_id=category.parent_category_id,
        category_name=category.category_name,
        category_code=category.category_code,
        display_order=category.display_order,
    )


@categories_router.put("/reorder", response_model=MessageResponse)
async def reorder_categories(
    payload: List[CategoryOrderItem],
    current_user: User = Depends(require_admin),
    repo: CategoryRepository = Depends(get_category_repository),
):
    """Новый displayOrder для нескольких категорий одним коммитом"""
    if not payload:
        raise ValidationError("Список категорий пуст")
    wanted = {item.category_id for item in payload}
    if len(wanted) != len(payload):
        raise ValidationError("Категория указана в списке несколько раз", field="categoryId")

    categories = {c.id: c for c in await repo.list(filters=[ExerciseCategory.id.in_(wanted)])}
    missing = wanted - set(categories)
    if missing:
        raise NotFoundError("Категория", ", ".join(str(i) for i in sorted(missing)))

    for item in payload:
        categories[item.category_id].display_order = item.display_order
    await repo.commit()
    return MessageResponse(message="Порядок категорий обновлён")


@categories_router.put("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    current_user: User = Depends(require_admin),
    repo: CategoryRepository = Depends(get_category_repository),
):
    category = await repo.get_by_id(category_id)
    if category is None:
        raise NotFoundError("Категория", category_id)
    if payload.parent_category_id == category_id:
        raise ConflictError("Категория не может быть родителем самой себя")
    await _check_category(repo, payload.parent_category_id)

    existing = await repo.get_by_code(payload.category_code)
    if existing is not None and existing.id != category_id:
        raise ConflictError(f"Категория с кодом {payload.category_code} уже существует")

    for field, value in payload.model_dump().items():
        setattr(category, field, value)
    category = await repo.update(category)
    return CategoryRead(
        id=category.id,
        parent_category_id=category.parent_category_id,
        category_name=category.category_name,
        category_code=category.category_code,
        display_order=category.display_order,
    )


@categories_router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: int,
    current_user: User = Depends(require_admin),
    repo: CategoryRepository = Depends(get_category_repository),
):
    category = await repo.get_by_id(category_id)
    if category is None:
        raise NotFoundError("Категория", category_id)
    if await repo.has_children(category_id):
        raise ConflictError("У категории есть подкатегории, удаление запрещено")

    await repo.delete(category)
    return MessageResponse(message="Категория удалена")
