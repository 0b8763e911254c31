"""
Состав программы тренировок: упорядоченные слоты упражнений.

Инвариант: внутри одной программы order_index слотов уникален.
Хранилище гарантирует его уникальным индексом (routine_id, order_index),
а сервис: единственное место, где меняются позиции слотов.

Все изменения слотов идут под блокировкой программы:
- asyncio.Lock на routine_id внутри процесса;
- SELECT ... FOR UPDATE строки программы в той же транзакции (между процессами).
Нарушение уникальности на уровне БД откатывается и отдаётся как ConflictError (409).
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.core.roles import is_admin
from app.core.validators import parse_choice
from app.models.enums import CategoryEnum, LevelEnum
from app.models.routine import Routine, RoutineExercise
from app.models.user import User
from app.repositories.exercise_repository import ExerciseRepository
from app.repositories.routine_repository import RoutineRepository
from app.schemas.routine import RoutineBase, RoutineCreate, SlotInput, SlotUpdate

logger = logging.getLogger(__name__)


class RoutineLockRegistry:
    """По одному asyncio.Lock на программу; неиспользуемые блокировки собирает GC."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, routine_id: int) -> asyncio.Lock:
        lock = self._locks.get(routine_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[routine_id] = lock
        return lock


routine_locks = RoutineLockRegistry()


@dataclass
class SlotOutcome:
    index: int
    success: bool
    slot: Optional[RoutineExercise] = None
    error: Optional[str] = None


@dataclass
class SlotBatchResult:
    results: List[SlotOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(outcome.success for outcome in self.results)


def _next_index(taken: Iterable[int]) -> int:
    return max(taken, default=-1) + 1


class RoutineService:
    def __init__(
        self,
        routines: RoutineRepository,
        exercises: ExerciseRepository,
        locks: RoutineLockRegistry = routine_locks,
    ):
        self.routines = routines
        self.exercises = exercises
        self.locks = locks

    # ------------------------------------------------------------------
    # Транзакция + блокировка программы
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _locked(self, routine_id: int) -> AsyncIterator[Routine]:
        """
        Изменение программы под блокировкой. Сбой откатывает только savepoint:
        остальные объекты сессии (actor, ранее прочитанные программы) остаются загруженными.
        На выходе транзакция завершается в любом случае, FOR UPDATE снимается.
        """
        async with self.locks.get(routine_id):
            routine = await self.routines.get_for_update(routine_id)
            if routine is None:
                await self.routines.commit()
                raise NotFoundError("Программа", routine_id)

            savepoint = await self.routines.begin_nested()
            try:
                yield routine
                await savepoint.commit()
            except IntegrityError as exc:
                await savepoint.rollback()
                logger.warning("Конфликт позиций в программе %s: %s", routine_id, exc.orig)
                raise ConflictError("Позиция упражнения в программе уже занята")
            except BaseException:
                await savepoint.rollback()
                raise
            finally:
                await self.routines.commit()

    @staticmethod
    def _ensure_can_modify(routine: Routine, actor: Optional[User]) -> None:
        # actor=None: внутренний вызов без HTTP-контекста
        if actor is None or is_admin(actor):
            return
        if routine.created_user is None or routine.created_user != actor.id:
            raise ForbiddenError("Можно изменять только свои программы")

    async def _ensure_exercise(self, exercise_id: int) -> None:
        if not await self.exercises.exists(exercise_id):
            raise NotFoundError("Упражнение", exercise_id)

    async def _renumber(self, slots: Sequence[RoutineExercise], new_indices: Sequence[int]) -> None:
        """
        Перенумеровать слоты в два прохода через временные отрицательные индексы,
        чтобы ни один промежуточный UPDATE не нарушил уникальный индекс.
        """
        if not slots:
            return
        for position, slot in enumerate(slots):
            slot.order_index = -(position + 1)
        await self.routines.flush()
        for slot, new_index in zip(slots, new_indices):
            slot.order_index = new_index
        await self.routines.flush()

    @staticmethod
    def _build_slot(routine_id: int, item: SlotInput, order_index: int) -> RoutineExercise:
        return RoutineExercise(
            routine_id=routine_id,
            exercise_id=item.exercise_id,
            order_index=order_index,
            sets=item.sets,
            reps=item.reps,
            duration_seconds=item.duration_seconds,
            rest_seconds=item.rest_seconds,
            created_at=datetime.utcnow(),
        )

    @staticmethod
    def _plan_indices(items: Sequence[SlotInput], taken: Set[int]) -> List[int]:
        """Явные индексы сохраняются как есть, пропущенные назначаются после максимального."""
        reserved = {item.order_index for item in items if item.order_index is not None}
        auto_index = _next_index(taken | reserved)
        planned = []
        for item in items:
            if item.order_index is not None:
                planned.append(item.order_index)
            else:
                planned.append(auto_index)
                auto_index += 1
        return planned

    def _apply_header(self, routine: Routine, data: RoutineBase) -> None:
        routine.name = data.name
        routine.description = data.description
        routine.level = parse_choice(LevelEnum, data.level, "level")
        routine.category = parse_choice(CategoryEnum, data.category, "category")
        routine.estimated_duration = data.estimated_duration
        routine.thumbnail_url = data.thumbnail_url

    def _new_routine(self, data: RoutineBase, actor: Optional[User]) -> Routine:
        now = datetime.utcnow()
        routine = Routine(
            created_user=None if actor is None or is_admin(actor) else actor.id,
            created_at=now,
            updated_at=now,
        )
        self._apply_header(routine, data)
        return routine

    # ------------------------------------------------------------------
    # Программы
    # ------------------------------------------------------------------

    async def list_routines(
        self,
        page: int,
        page_size: int,
        user_id: Optional[int] = None,
        level: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Routine], int]:
        # без user_id: системные программы
        filters = [Routine.created_user == user_id if user_id is not None else Routine.created_user.is_(None)]
        if level is not None:
            filters.append(Routine.level == parse_choice(LevelEnum, level, "level"))
        if category is not None:
            filters.append(Routine.category == parse_choice(CategoryEnum, category, "category"))
        return await self.routines.paginate(
            page,
            page_size,
            filters=filters,
            order_by=[Routine.created_at.desc(), Routine.id.desc()],
        )

    async def create_routine(self, data: RoutineBase, actor: Optional[User] = None) -> Routine:
        routine = self._new_routine(data, actor)
        return await self.routines.create(routine)

    async def create_routine_with_slots(
        self, data: RoutineCreate, actor: Optional[User] = None
    ) -> Tuple[Routine, List[RoutineExercise]]:
        """Заголовок и слоты пишутся одной транзакцией: при любой ошибке не сохраняется ничего."""
        routine = self._new_routine(data, actor)
        items = data.exercises

        explicit = [item.order_index for item in items if item.order_index is not None]
        if len(explicit) != len(set(explicit)):
            raise ConflictError("В списке упражнений повторяются позиции (orderIndex)")

        wanted = {item.exercise_id for item in items}
        missing = wanted - await self.exercises.get_existing_ids(list(wanted))
        if missing:
            raise NotFoundError("Упражнение", ", ".join(str(i) for i in sorted(missing)))

        try:
            await self.routines.add_routine(routine)
            for item, order_index in zip(items, self._plan_indices(items, set())):
                await self.routines.add_slot(self._build_slot(routine.id, item, order_index))
            await self.routines.commit()
        except IntegrityError as exc:
            await self.routines.rollback()
            logger.warning("Не удалось создать программу %r: %s", data.name, exc.orig)
            raise ConflictError("Программа конфликтует с существующими данными")
        except BaseException:
            await self.routines.rollback()
            raise

        logger.info("Создана программа %s (%s) с %d упражнениями", routine.id, routine.name, len(items))
        return routine, await self.routines.get_slots(routine.id)

    async def update_routine(self, routine_id: int, data: RoutineBase, actor: Optional[User] = None) -> Routine:
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            self._apply_header(routine, data)
            routine.updated_at = datetime.utcnow()
        return routine

    async def delete_routine(self, routine_id: int, actor: Optional[User] = None) -> None:
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            await self.routines.delete_routine(routine)
        logger.info("Программа %s удалена", routine_id)

    async def get_detail(self, routine_id: int) -> Tuple[Routine, List[RoutineExercise]]:
        routine = await self.routines.get_by_id(routine_id)
        if routine is None:
            raise NotFoundError("Программа", routine_id)
        return routine, await self.routines.get_slots(routine_id)

    # ------------------------------------------------------------------
    # Слоты
    # ------------------------------------------------------------------

    async def add_slots(
        self, routine_id: int, items: Sequence[SlotInput], actor: Optional[User] = None
    ) -> SlotBatchResult:
        """
        Добавить несколько слотов. Каждый элемент проверяется отдельно:
        неудачные пропускаются, удачные сохраняются. Итог возвращается по каждому элементу.
        """
        batch = SlotBatchResult()
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            taken = await self.routines.get_order_indices(routine_id)
            known = await self.exercises.get_existing_ids([item.exercise_id for item in items])

            for position, (item, order_index) in enumerate(zip(items, self._plan_indices(items, taken))):
                if item.exercise_id not in known:
                    batch.results.append(
                        SlotOutcome(position, False, error=f"Упражнение {item.exercise_id} не найдено")
                    )
                    continue
                if order_index in taken:
                    batch.results.append(
                        SlotOutcome(position, False, error=f"Позиция {order_index} уже занята")
                    )
                    continue
                slot = await self.routines.add_slot(self._build_slot(routine_id, item, order_index))
                taken.add(order_index)
                batch.results.append(SlotOutcome(position, True, slot=slot))

        stored = {slot.id: slot for slot in await self.routines.get_slots(routine_id)}
        for outcome in batch.results:
            if outcome.slot is not None:
                outcome.slot = stored.get(outcome.slot.id, outcome.slot)

        if not batch.success:
            failed = sum(1 for outcome in batch.results if not outcome.success)
            logger.warning("Программа %s: %d из %d упражнений не добавлены", routine_id, failed, len(items))
        return batch

    async def add_single_slot(
        self, routine_id: int, item: SlotInput, actor: Optional[User] = None
    ) -> RoutineExercise:
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            await self._ensure_exercise(item.exercise_id)
            taken = await self.routines.get_order_indices(routine_id)
            order_index = item.order_index if item.order_index is not None else _next_index(taken)
            if order_index in taken:
                raise ConflictError(f"Позиция {order_index} в программе {routine_id} уже занята")
            slot = await self.routines.add_slot(self._build_slot(routine_id, item, order_index))
        return await self.routines.get_slot(slot.id)

    async def insert_slot_at(
        self, routine_id: int, position: int, item: SlotInput, actor: Optional[User] = None
    ) -> RoutineExercise:
        """Вставить слот на позицию position, сдвинув последующие на один шаг."""
        if position < 0:
            raise ValidationError("Позиция должна быть неотрицательной", field="position")
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            await self._ensure_exercise(item.exercise_id)
            to_shift = [slot for slot in await self.routines.get_slots(routine_id) if slot.order_index >= position]
            await self._renumber(to_shift, [slot.order_index + 1 for slot in to_shift])
            slot = await self.routines.add_slot(self._build_slot(routine_id, item, position))
        return await self.routines.get_slot(slot.id)

    async def reorder_slots(
        self, routine_id: int, slot_ids: Sequence[int], actor: Optional[User] = None
    ) -> List[RoutineExercise]:
        """Новый порядок: позиции 0..n-1 в порядке slot_ids."""
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            slots = await self.routines.get_slots(routine_id)
            by_id = {slot.id: slot for slot in slots}
            if len(slot_ids) != len(set(slot_ids)) or set(slot_ids) != set(by_id):
                raise ValidationError(
                    "Список должен содержать все упражнения программы ровно по одному разу",
                    field="slotIds",
                )
            ordered = [by_id[slot_id] for slot_id in slot_ids]
            await self._renumber(ordered, list(range(len(ordered))))
        return await self.routines.get_slots(routine_id)

    async def update_slot(
        self, routine_id: int, slot_id: int, data: SlotUpdate, actor: Optional[User] = None
    ) -> RoutineExercise:
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            slot = await self.routines.get_slot(slot_id)
            # чужой слот выглядит как несуществующий
            if slot is None or slot.routine_id != routine_id:
                raise NotFoundError("Упражнение программы", slot_id)
            if data.exercise_id != slot.exercise_id:
                await self._ensure_exercise(data.exercise_id)
            if data.order_index != slot.order_index:
                if data.order_index in await self.routines.get_order_indices(routine_id):
                    raise ConflictError(f"Позиция {data.order_index} в программе {routine_id} уже занята")

            slot.exercise_id = data.exercise_id
            slot.order_index = data.order_index
            slot.sets = data.sets
            slot.reps = data.reps
            slot.duration_seconds = data.duration_seconds
            slot.rest_seconds = data.rest_seconds
            await self.routines.flush()
        return await self.routines.get_slot(slot_id)

    async def remove_slot(
        self, routine_id: int, slot_id: int, actor: Optional[User] = None
    ) -> RoutineExercise:
        """Удалить слот. Оставшиеся позиции не уплотняются."""
        async with self._locked(routine_id) as routine:
            self._ensure_can_modify(routine, actor)
            slot = await self.routines.get_slot(slot_id)
            if slot is None or slot.routine_id != routine_id:
                raise NotFoundError("Упражнение программы", slot_id)
            await self.routines.delete_slot(slot)
        return slot
