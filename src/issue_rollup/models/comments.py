"""Comment models."""

from __future__ import annotations

from datetime import datetime

from .base import TrackerModel


class CommentRecord(TrackerModel):
    author: str = ""
    body: str = ""
    url: str = ""
    created_at: datetime
    updated_at: datetime | None = None
