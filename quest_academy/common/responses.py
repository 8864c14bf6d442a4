import math
from typing import Any, Optional

from fastapi import Query

from quest_academy.database import serialize_mongo


def success(data: Any = None, pagination: Optional[dict] = None) -> dict:
    """Wrap payload in the standard success envelope"""
    body = {"success": True, "data": serialize_mongo(data)}
    if pagination is not None:
        body["pagination"] = pagination
    return body


class PageParams:
    """
    Query dependency for paginated list endpoints
    page >= 1, limit 1-100
    """

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
    ):
        self.page = page
        self.limit = limit

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "total_pages": math.ceil(total / self.limit) if self.limit else 0,
        }


def paginated(data: list, params: PageParams, total: int) -> dict:
    return success(data, params.meta(total))
