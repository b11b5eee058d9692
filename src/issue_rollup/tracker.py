"""Abstract interface of the issue tracker the rollups read from."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .models import (
    CommentRecord,
    FieldValue,
    IssueBatch,
    IssueKey,
    IssueRecord,
    ProjectItem,
    ProjectViewRecord,
)


class IssueTracker(ABC):
    """Everything the collections need from a tracker. Implementations perform the I/O."""

    @abstractmethod
    async def get_issue(self, key: IssueKey) -> IssueRecord:
        """Fetch a single issue."""
        ...

    @abstractmethod
    async def list_issues_for_repo(self, organization: str, repository: str) -> IssueBatch:
        """Fetch the open issues of a repository."""
        ...

    @abstractmethod
    async def list_issues_for_project(self, organization: str, project_number: int) -> IssueBatch:
        """Fetch the issues of a project, with their project fields attached."""
        ...

    @abstractmethod
    async def list_subissues(self, key: IssueKey) -> IssueBatch:
        """Fetch the sub-issues of an issue."""
        ...

    @abstractmethod
    async def list_comments_for_issue(
        self, key: IssueKey, num_comments: int
    ) -> list[CommentRecord]:
        """Fetch the most recent comments of an issue, oldest first."""
        ...

    @abstractmethod
    async def list_comments_for_issues(
        self, keys: Sequence[IssueKey], num_comments: int
    ) -> dict[IssueKey, list[CommentRecord]]:
        """Fetch the most recent comments of many issues in one round trip."""
        ...

    @abstractmethod
    async def list_issue_fields(self, key: IssueKey) -> dict[str, FieldValue]:
        """Fetch the custom issue fields of an issue."""
        ...

    @abstractmethod
    async def list_project_fields_for_issue(
        self, key: IssueKey, project_number: int
    ) -> dict[str, FieldValue]:
        """Fetch the project field values of one issue within a project."""
        ...

    @abstractmethod
    async def list_project_fields_for_project(
        self, organization: str, project_number: int
    ) -> list[ProjectItem]:
        """Fetch the field values of every item in a project."""
        ...

    @abstractmethod
    async def get_project_view(
        self, organization: str, project_number: int, view_number: int
    ) -> ProjectViewRecord:
        """Fetch a saved project view."""
        ...
