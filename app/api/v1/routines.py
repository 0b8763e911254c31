import math
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies import get_current_user, get_routine_service
from app.models.routine import Routine, RoutineExercise
from app.models.user import User
from app.schemas.common import MessageResponse, Page
from app.schemas.routine import (
    RoutineCreate,
    RoutineDetail,
    RoutineRead,
    RoutineUpdate,
    SlotBatchResponse,
    SlotInput,
    SlotRead,
    SlotReorderRequest,
    SlotResult,
    SlotUpdate,
)
from app.services.routine_service import RoutineService

router = APIRouter(tags=["routines"])


# ==========================
# ВСПОМОГАТЕЛЬНЫЕ ФУНКЦИИ
# ==========================

def to_slot_read(slot: RoutineExercise) -> SlotRead:
    read = SlotRead.model_validate(slot, from_attributes=True)
    read.exercise_name = slot.exercise.name if slot.exercise is not None else None
    return read


def to_routine_detail(routine: Routine, slots: List[RoutineExercise]) -> RoutineDetail:
    detail = RoutineDetail.model_validate(routine)
    detail.exercises = [to_slot_read(slot) for slot in slots]
    return detail


# ==========================
# ENDPOINTS
# ==========================

@router.get("", response_model=Page[RoutineRead])
async def list_routines(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    user_id: Optional[int] = Query(None, alias="userId", description="Без userId: системные программы"),
    level: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    routines, total = await service.list_routines(page, page_size, user_id, level, category)
    return Page[RoutineRead](
        items=[RoutineRead.model_validate(r) for r in routines],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 1,
    )


@router.get("/{routine_id}", response_model=RoutineDetail)
async def get_routine(
    routine_id: int,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    routine, slots = await service.get_detail(routine_id)
    return to_routine_detail(routine, slots)


@router.post("", response_model=RoutineDetail, status_code=status.HTTP_201_CREATED)
async def create_routine(
    payload: RoutineCreate,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    """Создание программы вместе с начальным списком упражнений"""
    routine, slots = await service.create_routine_with_slots(payload, current_user)
    return to_routine_detail(routine, slots)


@router.put("/{routine_id}", response_model=RoutineRead)
async def update_routine(
    routine_id: int,
    payload: RoutineUpdate,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    return await service.update_routine(routine_id, payload, current_user)


@router.delete("/{routine_id}", response_model=MessageResponse)
async def delete_routine(
    routine_id: int,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    await service.delete_routine(routine_id, current_user)
    return MessageResponse(message="Программа удалена")


@router.post("/{routine_id}/exercises", response_model=SlotRead, status_code=status.HTTP_201_CREATED)
async def add_exercise_to_routine(
    routine_id: int,
    payload: SlotInput,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    slot = await service.add_single_slot(routine_id, payload, current_user)
    return to_slot_read(slot)


@router.post("/{routine_id}/exercises/batch", response_model=SlotBatchResponse)
async def add_exercises_to_routine(
    routine_id: int,
    payload: List[SlotInput],
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    """Пакетное добавление: результат по каждому элементу, success истинно, только если прошли все"""
    batch = await service.add_slots(routine_id, payload, current_user)
    return SlotBatchResponse(
        success=batch.success,
        results=[
            SlotResult(
                index=outcome.index,
                success=outcome.success,
                slot=to_slot_read(outcome.slot) if outcome.slot is not None else None,
                error=outcome.error,
            )
            for outcome in batch.results
        ],
    )


@router.post("/{routine_id}/exercises/insert", response_model=SlotRead, status_code=status.HTTP_201_CREATED)
async def insert_exercise_into_routine(
    routine_id: int,
    payload: SlotInput,
    position: int = Query(..., ge=0),
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    """Вставка на позицию со сдвигом последующих упражнений"""
    slot = await service.insert_slot_at(routine_id, position, payload, current_user)
    return to_slot_read(slot)


# объявлен раньше /{slot_id}, иначе "order" попадёт в параметр пути
@router.put("/{routine_id}/exercises/order", response_model=List[SlotRead])
async def reorder_routine_exercises(
    routine_id: int,
    payload: SlotReorderRequest,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    slots = await service.reorder_slots(routine_id, payload.slot_ids, current_user)
    return [to_slot_read(slot) for slot in slots]


@router.put("/{routine_id}/exercises/{slot_id}", response_model=SlotRead)
async def update_routine_exercise(
    routine_id: int,
    slot_id: int,
    payload: SlotUpdate,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    slot = await service.update_slot(routine_id, slot_id, payload, current_user)
    return to_slot_read(slot)


@router.delete("/{routine_id}/exercises/{slot_id}", response_model=SlotRead)
async def delete_routine_exercise(
    routine_id: int,
    slot_id: int,
    current_user: User = Depends(get_current_user),
    service: RoutineService = Depends(get_routine_service),
):
    slot = await service.remove_slot(routine_id, slot_id, current_user)
    return to_slot_read(slot)
