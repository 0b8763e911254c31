from typing import Generic, List, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """На проводе camelCase, внутри snake_case; принимаем оба варианта."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Page(CamelModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    pages: int


class MessageResponse(CamelModel):
    message: str
