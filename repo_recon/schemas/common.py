from __future__ import annotations

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    per_page: int
    total_pages: int
    total_count: int
    next_page: int | None = None
    prev_page: int | None = None


class PageMeta(BaseModel):
    pagination: Pagination


class JobAccepted(BaseModel):
    session_id: str
    status: str = "processing"
    repository_id: int | None = None
    websocket_url: str
    status_url: str


def paginate(*, page: int, per_page: int, total_count: int) -> PageMeta:
    total_pages = max(1, -(-total_count // per_page)) if per_page else 1
    return PageMeta(
        pagination=Pagination(
            page=page,
            per_page=per_page,
            total_pages=total_pages,
            total_count=total_count,
            next_page=page + 1 if page < total_pages else None,
            prev_page=page - 1 if page > 1 else None,
        )
    )
