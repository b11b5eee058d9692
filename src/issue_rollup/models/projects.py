"""Project (tracker-native grouping) models."""

from __future__ import annotations

from .base import TrackerModel
from .common import FieldValue, IssueKey


class ProjectAssociation(TrackerModel):
    """Custom field values an issue carries within one project."""

    organization: str
    number: int
    fields: dict[str, FieldValue] = {}


class ProjectItem(TrackerModel):
    issue: IssueKey
    fields: dict[str, FieldValue] = {}


class ProjectViewRecord(TrackerModel):
    number: int | None = None
    name: str = ""
    filter_query: str = ""
