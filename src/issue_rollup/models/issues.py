"""Issue models."""

from __future__ import annotations

from datetime import datetime

from .base import TrackerModel
from .comments import CommentRecord
from .common import FieldValue, ParentRef, Repository
from .projects import ProjectAssociation


class IssueRecord(TrackerModel):
    number: int
    title: str = ""
    body: str | None = None
    url: str = ""
    is_open: bool = True
    created_at: datetime
    updated_at: datetime
    type: str = ""
    repository: Repository
    assignees: list[str] = []
    labels: list[str] = []
    comments: list[CommentRecord] | None = None
    parent: ParentRef | None = None
    project: ProjectAssociation | None = None
    issue_fields: dict[str, FieldValue] | None = None
    is_subissue: bool = False


class IssueBatch(TrackerModel):
    """A batch of issues together with the title and url of where they came from."""

    records: list[IssueRecord] = []
    title: str = ""
    url: str = ""
