from typing import Generic, TypeVar, List
from pydantic import BaseModel
from common.exceptions import InvalidInput

T = TypeVar('T')

MAX_PAGE_LIMIT = 500

class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""
    items: List[T]
    total: int
    skip: int
    limit: int
    has_more: bool

    @staticmethod
    def validate_window(skip: int, limit: int):
        if skip < 0:
            raise InvalidInput("skip must be zero or greater")
        if limit < 1 or limit > MAX_PAGE_LIMIT:
            raise InvalidInput(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

    @classmethod
    def from_sequence(cls, items: List[T], skip: int, limit: int):
        """Slice an already ordered, already filtered sequence into one page."""
        cls.validate_window(skip, limit)
        page = list(items[skip:skip + limit])
        return cls(
            items=page,
            total=len(items),
            skip=skip,
            limit=limit,
            has_more=(skip + len(page)) < len(items)
        )
