import math
from typing import TypeVar, Generic
from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    pages: int
    size: int

    @classmethod
    def build(cls, items, total: int, page: int, size: int) -> "Page":
        """Wrap one slice of a listing; an empty listing still reports one page."""
        return cls(items=items, total=total, page=page, pages=math.ceil(total / size) if total else 1, size=size)
