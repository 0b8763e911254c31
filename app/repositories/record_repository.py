from datetime import date
from typing import Any, List, Optional

from sqlalchemy import select

from app.models.records import BodyRecord, WorkoutRecord
from app.models.user_profile import UserProfile
from app.repositories.base import BaseRepository


class UserProfileRepository(BaseRepository[UserProfile]):
    model = UserProfile


class BodyRecordRepository(BaseRepository[BodyRecord]):
    model = BodyRecord

    async def get_latest(self, user_id: int) -> Optional[BodyRecord]:
        result = await self.db.execute(
            select(BodyRecord)
            .where(BodyRecord.user_id == user_id)
            .order_by(BodyRecord.recorded_date.desc(), BodyRecord.created_at.desc(), BodyRecord.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def user_filters(self, user_id: int, date_from: Optional[date], date_to: Optional[date]) -> List[Any]:
        filters = [BodyRecord.user_id == user_id]
        if date_from:
            filters.append(BodyRecord.recorded_date >= date_from)
        if date_to:
            filters.append(BodyRecord.recorded_date <= date_to)
        return filters


class WorkoutRecordRepository(BaseRepository[WorkoutRecord]):
    model = WorkoutRecord

    def user_filters(self, user_id: int, date_from: Optional[date], date_to: Optional[date]) -> List[Any]:
        filters = [WorkoutRecord.user_id == user_id]
        if date_from:
            filters.append(WorkoutRecord.workout_date >= date_from)
        if date_to:
            filters.append(WorkoutRecord.workout_date <= date_to)
        return filters
