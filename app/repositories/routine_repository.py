from typing import List, Optional, Set

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSessionTransaction
from sqlalchemy.orm import selectinload

from app.models.routine import Routine, RoutineExercise
from app.repositories.base import BaseRepository


class RoutineRepository(BaseRepository[Routine]):
    """
    Доступ к routines и routine_exercises.

    Методы для слотов не коммитят: границы транзакции держит RoutineService,
    чтобы блокировка строки программы жила до конца изменения.
    """

    model = Routine

    async def get_for_update(self, routine_id: int) -> Optional[Routine]:
        """SELECT ... FOR UPDATE по строке программы (на SQLite блокировка не рендерится)."""
        result = await self.db.execute(
            select(Routine).where(Routine.id == routine_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_slots(self, routine_id: int) -> List[RoutineExercise]:
        result = await self.db.execute(
            select(RoutineExercise)
            .options(selectinload(RoutineExercise.exercise))
            .where(RoutineExercise.routine_id == routine_id)
            .order_by(RoutineExercise.order_index.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_slot(self, slot_id: int) -> Optional[RoutineExercise]:
        result = await self.db.execute(
            select(RoutineExercise)
            .options(selectinload(RoutineExercise.exercise))
            .where(RoutineExercise.id == slot_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_order_indices(self, routine_id: int) -> Set[int]:
        result = await self.db.execute(
            select(RoutineExercise.order_index).where(RoutineExercise.routine_id == routine_id)
        )
        return set(result.scalars().all())

    async def add_routine(self, routine: Routine) -> Routine:
        self.db.add(routine)
        await self.db.flush()
        return routine

    async def add_slot(self, slot: RoutineExercise) -> RoutineExercise:
        self.db.add(slot)
        await self.db.flush()
        return slot

    async def delete_slot(self, slot: RoutineExercise) -> None:
        await self.db.delete(slot)
        await self.db.flush()

    async def delete_routine(self, routine: Routine) -> None:
        await self.db.execute(delete(RoutineExercise).where(RoutineExercise.routine_id == routine.id))
        await self.db.delete(routine)
        await self.db.flush()

    async def flush(self) -> None:
        await self.db.flush()

    async def begin_nested(self) -> AsyncSessionTransaction:
        """SAVEPOINT внутри текущей транзакции; откат не трогает остальные объекты сессии."""
        return await self.db.begin_nested()

