from __future__ import annotations

from pydantic import BaseModel


class JobStatusRead(BaseModel):
    """Polling view of a status record. Only the fields for its state are set."""

    status: str
    comparison_id: int | None = None
    comparison_url: str | None = None
    repository_id: int | None = None
    repository_url: str | None = None
    error_message: str | None = None
