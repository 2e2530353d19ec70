"""Envelope pieces shared by list endpoints."""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total_pages=math.ceil(total / limit) if limit else 0)

    def to_response(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "totalPages": self.total_pages}


class Page(BaseModel):
    """A page of results plus the total count over the whole filter."""

    items: List[Any]
    total: int
    pagination: Pagination

    def envelope(self, message: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": True,
            "count": len(self.items),
            "total": self.total,
            "pagination": self.pagination.to_response(),
            "data": [item.to_response() for item in self.items],
        }
        if message:
            body["message"] = message
        return body
