"""
Замеры тела и записи тренировок.

Список всегда ограничен текущим пользователем; чужую запись по id
может открыть или изменить только администратор.
"""
import logging
import math
from datetime import date
from typing import List, Optional, Sequence

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import (
    get_body_record_repository,
    get_current_user,
    get_exercise_repository,
    get_workout_record_repository,
)
from app.core.exceptions import NotFoundError, ValidationError
from app.core.rbac import ensure_self_or_admin
from app.models.records import BodyRecord, WorkoutRecord
from app.models.user import User
from app.repositories.exercise_repository import ExerciseRepository
from app.repositories.record_repository import BodyRecordRepository, WorkoutRecordRepository
from app.schemas.common import MessageResponse, Page
from app.schemas.records import (
    BodyRecordCreate,
    BodyRecordRead,
    BodyRecordUpdate,
    WorkoutRecordCreate,
    WorkoutRecordRead,
    WorkoutRecordUpdate,
)

logger = logging.getLogger(__name__)

body_router = APIRouter(tags=["bodyrecords"])
workout_router = APIRouter(tags=["workoutrecords"])

MAX_BULK_RECORDS = 100


def _check_period(date_from: Optional[date], date_to: Optional[date]) -> None:
    if date_from and date_to and date_from > date_to:
        raise ValidationError("dateFrom не может быть позже dateTo", field="dateFrom")


def _check_bulk(payload: Sequence) -> None:
    if not payload:
        raise ValidationError("Список записей пуст")
    if len(payload) > MAX_BULK_RECORDS:
        raise ValidationError(f"За один запрос можно добавить не более {MAX_BULK_RECORDS} записей")


async def _owned(repo, record_id: int, resource: str, current_user: User):
    record = await repo.get_by_id(record_id)
    if record is None:
        raise NotFoundError(resource, record_id)
    ensure_self_or_admin(current_user, record.user_id)
    return record


# ==========================
# /bodyrecords
# ==========================

@body_router.get("", response_model=Page[BodyRecordRead])
async def list_body_records(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    _check_period(date_from, date_to)
    filters = repo.user_filters(current_user.id, date_from, date_to)
    items, total = await repo.paginate(
        page, page_size, filters=filters, order_by=[BodyRecord.recorded_date.desc(), BodyRecord.id.desc()]
    )
    return Page[BodyRecordRead](
        items=[BodyRecordRead.model_validate(r) for r in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 1,
    )


@body_router.get("/user/{user_id}/latest", response_model=BodyRecordRead)
async def get_latest_body_record(
    user_id: int,
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    """Последний замер пользователя: по дате замера, затем по времени создания"""
    ensure_self_or_admin(current_user, user_id)
    record = await repo.get_latest(user_id)
    if record is None:
        raise NotFoundError("Замер пользователя", user_id)
    return record


@body_router.get("/{record_id}", response_model=BodyRecordRead)
async def get_body_record(
    record_id: int,
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    return await _owned(repo, record_id, "Замер", current_user)


@body_router.post("", response_model=BodyRecordRead, status_code=status.HTTP_201_CREATED)
async def create_body_record(
    payload: BodyRecordCreate,
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    record = BodyRecord(user_id=current_user.id, **payload.model_dump())
    return await repo.create(record)


@body_router.post("/bulk", response_model=List[BodyRecordRead], status_code=status.HTTP_201_CREATED)
async def create_body_records_bulk(
    payload: List[BodyRecordCreate],
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    _check_bulk(payload)
    records = [BodyRecord(user_id=current_user.id, **item.model_dump()) for item in payload]
    records = await repo.create_many(records)
    logger.info("Пользователь %s: добавлено замеров: %d", current_user.id, len(records))
    return records


@body_router.put("/{record_id}", response_model=BodyRecordRead)
async def update_body_record(
    record_id: int,
    payload: BodyRecordUpdate,
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    record = await _owned(repo, record_id, "Замер", current_user)
    for field, value in payload.model_dump().items():
        setattr(record, field, value)
    return await repo.update(record)


@body_router.delete("/{record_id}", response_model=MessageResponse)
async def delete_body_record(
    record_id: int,
    current_user: User = Depends(get_current_user),
    repo: BodyRecordRepository = Depends(get_body_record_repository),
):
    record = await _owned(repo, record_id, "Замер", current_user)
    await repo.delete(record)
    return MessageResponse(message="Замер удалён")


# ==========================
# /workoutrecords
# ==========================

async def _check_exercise(exercises: ExerciseRepository, exercise_id: Optional[int]) -> None:
    if exercise_id is not None and not await exercises.exists(exercise_id):
        raise NotFoundError("Упражнение", exercise_id)


@workout_router.get("", response_model=Page[WorkoutRecordRead])
async def list_workout_records(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    current_user: User = Depends(get_current_user),
    repo: WorkoutRecordRepository = Depends(get_workout_record_repository),
):
    _check_period(date_from, date_to)
    filters = repo.user_filters(current_user.id, date_from, date_to)
    items, total = await repo.paginate(
        page, page_size, filters=filters, order_by=[WorkoutRecord.workout_date.desc(), WorkoutRecord.id.desc()]
    )
    return Page[WorkoutRecordRead](
        items=[WorkoutRecordRead.model_validate(r) for r in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 1,
    )


@workout_router.get("/{record_id}", response_model=WorkoutRecordRead)
async def get_workout_record(
    record_id: int,
    current_user: User = Depends(get_current_user),
    repo: WorkoutRecordRepository = Depends(get_workout_record_repository),
):
    return await _owned(repo, record_id, "Запись тренировки", current_user)


@workout_router.post("", response_model=WorkoutRecordRead, status_code=status.HTTP_201_CREATED)
async def create_workout_record(
    payload: WorkoutRecordCreate,
    current_user: User = Depends(get_current_user),
    repo: WorkoutRecordRepository = Depends(get_workout_record_repository),
    exercises: ExerciseRepository = Depends(get_exercise_repository),
):
    await _check_exercise(exercises, payload.exercise_id)
    record = WorkoutRecord(user_id=current_user.id, **payload.model_dump())
    return await repo.create(record)


@workout_router.post("/bulk", response_model=List[WorkoutRecordRead], status_code=status.HTTP_201_CREATED)
async def create_workout_records_bulk(
    payload: List[WorkoutRecordCreate],
    current_user: User = Depends(get_current_user),
    repo: WorkoutRecordRepository = Depends(get_workout_record_repository),
    exercises: ExerciseRepository = Depends(get_exercise_repository),
):
    _check_bulk(payload)
    wanted = {item.exercise_id for item in payload if item.exercise_id is not None}
    missing = wanted - await exercises.get_existing_ids(list(wanted))
    if missing:
        raise NotFoundError("Упражнение", ", ".join(str(i) for i in sorted(missing)))

    records = [WorkoutRecord(user_id=current_user.id, **item.model_dump()) for item in payload]
    records = await repo.create_many(records)
    logger.info("Пользователь %s: добавлено записей тренировок: %d", current_user.id, len(records))
    return records


@workout_router.put("/{record_id}", response_model=WorkoutRecordRead)
async def update_workout_record(
    record_id: int,
    payload: WorkoutRecordUpdate,
    current_user: User = Depends(get_current_user),
    repo: WorkoutRecordRepository = Depends(get_workout_record_repository),
    exercises: ExerciseRepository = Depends(get_exercise_repository),
):
    record = await _owned(repo, record_id, "Запись тренировки", current_user)
    await _check_exercise(exercises, payload.exercise_id)
    for field, value in payload.model_dump().items():
        setattr(record, field, value)
    return await repo.update(record)


@workout_router.delete("/{record_id}", response_model=MessageResponse)
async def delete_workout_record(
    record_id: int,
    current_user: User = Depends(get_current_user),
    repo: WorkoutRecordRepository = Depends(get_workout_record_repository),
):
    record = await _owned(repo, record_id, "Запись тренировки", current_user)
    await repo.delete(record)
    return MessageResponse(message="Запись тренировки удалена")
