from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.models.exercise import Exercise, ExerciseCategory
from app.models.routine import RoutineExercise
from app.repositories.base import BaseRepository


class ExerciseRepository(BaseRepository[Exercise]):
    model = Exercise

    async def is_referenced_by_routines(self, exercise_id: int) -> bool:
        result = await self.db.execute(
            select(RoutineExercise.id).where(RoutineExercise.exercise_id == exercise_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_existing_ids(self, exercise_ids: List[int]) -> set:
        if not exercise_ids:
            return set()
        result = await self.db.execute(select(Exercise.id).where(Exercise.id.in_(exercise_ids)))
        return set(result.scalars().all())


class CategoryRepository(BaseRepository[ExerciseCategory]):
    model = ExerciseCategory

    def _with_relations(self, include_exercises: bool):
        options = [selectinload(ExerciseCategory.children)]
        if include_exercises:
            options.append(selectinload(ExerciseCategory.exercises))
            options.append(selectinload(ExerciseCategory.children).selectinload(ExerciseCategory.exercises))
        return options

    async def list_tree(self, include_exercises: bool = False) -> List[ExerciseCategory]:
        """Только верхний уровень, подкатегории подгружаются через selectinload."""
        result = await self.db.execute(
            select(ExerciseCategory)
            .options(*self._with_relations(include_exercises))
            .where(ExerciseCategory.parent_category_id.is_(None))
            .order_by(ExerciseCategory.display_order, ExerciseCategory.category_name)
        )
        return list(result.scalars().all())

    async def get_with_children(self, category_id: int, include_exercises: bool = False) -> Optional[ExerciseCategory]:
        result = await self.db.execute(
            select(ExerciseCategory)
            .options(*self._with_relations(include_exercises))
            .where(ExerciseCategory.id == category_id)
        )
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[ExerciseCategory]:
        result = await self.db.execute(select(ExerciseCategory).where(ExerciseCategory.category_code == code))
        return result.scalar_one_or_none()

    async def has_children(self, category_id: int) -> bool:
        result = await self.db.execute(
            select(ExerciseCategory.id).where(ExerciseCategory.parent_category_id == category_id).limit(1)
        )
        return result.scalar_one_or_none() is not None
