"""Base model for records handed over by the issue tracker."""

from __future__ import annotations

from pydantic import BaseModel


class TrackerModel(BaseModel):
    """Base model with common behavior for all tracker records."""

    model_config = {"extra": "ignore", "populate_by_name": True}
