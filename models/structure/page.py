from typing import Any, List
from pydantic import BaseModel


class Page(BaseModel):
    """One slice of an ordered result set."""

    items: List[Any]
    total_count: int
    has_more: bool


def paginate(items: List[Any], limit: int | None = None, skip: int = 0) -> Page:
    if skip < 0:
        raise ValueError("skip must be a non-negative integer")
    if limit is not None and limit < 1:
        raise ValueError("limit must be a positive integer")

    end = None if limit is None else skip + limit
    sliced = items[skip:end]
    total = len(items)

    return Page(items=sliced, total_count=total, has_more=total > skip + len(sliced))
