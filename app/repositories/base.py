from typing import Any, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Общий CRUD поверх AsyncSession. Наследники задают model и свои выборки."""

    model: Type[ModelT]

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, entity_id: Any) -> Optional[ModelT]:
        return await self.db.get(self.model, entity_id)

    async def exists(self, entity_id: Any) -> bool:
        return await self.get_by_id(entity_id) is not None

    async def list(
        self,
        filters: Iterable[Any] = (),
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        query = select(self.model).where(*filters).order_by(*order_by).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(self, filters: Iterable[Any] = ()) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(*filters)
        )
        return result.scalar_one()

    async def paginate(
        self,
        page: int,
        page_size: int,
        filters: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
    ) -> Tuple[List[ModelT], int]:
        total = await self.count(filters)
        items = await self.list(filters, order_by, offset=(page - 1) * page_size, limit=page_size)
        return items, total

    async def create(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.commit()
        await self.db.refresh(entity)
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        await self.db.commit()
        await self.db.refresh(entity)
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.commit()

    async def create_many(self, entities: Sequence[ModelT]) -> List[ModelT]:
        """Сохранить пачку одним коммитом: либо все записи, либо ни одной."""
        self.db.add_all(entities)
        await self.db.commit()
        for entity in entities:
            await self.db.refresh(entity)
        return list(entities)

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
