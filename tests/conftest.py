"""Shared test fixtures for issue-rollup."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import respx

from issue_rollup.client import GitHubClient
from issue_rollup.config import RollupConfig
from issue_rollup.context import RollupContext
from issue_rollup.exceptions import GitHubNotFoundError
from issue_rollup.models import (
    CommentRecord,
    FieldValue,
    IssueBatch,
    IssueKey,
    IssueRecord,
    ProjectAssociation,
    ProjectItem,
    ProjectViewRecord,
    Repository,
)
from issue_rollup.tracker import IssueTracker

TEST_API_URL = "https://api.github.test"
TEST_TOKEN = "test-token"
ORG = "acme"
REPO = "widgets"

NOW = datetime.now(timezone.utc)


def make_comment(body: str, *, days_ago: float = 1, n: int = 1, author: str = "octocat") -> CommentRecord:
    created = NOW - timedelta(days=days_ago)
    return CommentRecord(
        author=author,
        body=body,
        url=f"https://github.com/{ORG}/{REPO}/issues/1#issuecomment-{n}",
        created_at=created,
        updated_at=created,
    )


def make_record(
    number: int,
    *,
    title: str | None = None,
    body: str = "",
    repo: str = REPO,
    comments: list[CommentRecord] | None = None,
    project: int | None = None,
    fields: dict[str, Any] | None = None,
    **kwargs: Any,
) -> IssueRecord:
    """An open issue updated an hour ago; ``fields`` are wrapped as project field values."""
    association = None
    if project is not None:
        association = ProjectAssociation(
            organization=ORG,
            number=project,
            fields={name: field_value(value) for name, value in (fields or {}).items()},
        )
    return IssueRecord(
        number=number,
        title=title if title is not None else f"Issue {number}",
        body=body,
        url=f"https://github.com/{ORG}/{repo}/issues/{number}",
        created_at=NOW - timedelta(days=30),
        updated_at=NOW - timedelta(hours=1),
        repository=Repository(name=repo, owner=ORG, name_with_owner=f"{ORG}/{repo}"),
        comments=comments,
        project=association,
        **kwargs,
    )


def field_value(value: Any) -> FieldValue:
    if isinstance(value, FieldValue):
        return value
    return FieldValue(kind="SingleSelect" if isinstance(value, str) else "Number", value=value)


def key(number: int, repo: str = REPO) -> IssueKey:
    return IssueKey(organization=ORG, repository=repo, number=number)


class FakeTracker(IssueTracker):
    """In-memory tracker that records every call it receives."""

    def __init__(self) -> None:
        self.issues: dict[IssueKey, IssueRecord] = {}
        self.comments: dict[IssueKey, list[CommentRecord]] = {}
        self.subissues: dict[IssueKey, list[IssueRecord]] = {}
        self.issue_fields: dict[IssueKey, dict[str, FieldValue]] = {}
        self.project_fields: dict[IssueKey, dict[str, FieldValue]] = {}
        self.views: dict[int, ProjectViewRecord] = {}
        self.project_records: list[IssueRecord] = []
        self.failing_subissues = False
        self.calls: list[tuple[str, Any]] = []

    def add(self, record: IssueRecord) -> IssueRecord:
        self.issues[IssueKey(organization=record.repository.owner, repository=record.repository.name, number=record.number)] = record
        return record

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def get_issue(self, key: IssueKey) -> IssueRecord:
        self.calls.append(("get_issue", key))
        if key not in self.issues:
            raise GitHubNotFoundError(f"Issue {key} not found")
        return self.issues[key].model_copy(deep=True)

    async def list_issues_for_repo(self, organization: str, repository: str) -> IssueBatch:
        self.calls.append(("list_issues_for_repo", (organization, repository)))
        records = [
            r.model_copy(deep=True) for k, r in self.issues.items() if k.repository == repository
        ]
        return IssueBatch(
            records=records,
            title=f"{organization}/{repository}",
            url=f"https://github.com/{organization}/{repository}/issues",
        )

    async def list_issues_for_project(self, organization: str, project_number: int) -> IssueBatch:
        self.calls.append(("list_issues_for_project", (organization, project_number)))
        return IssueBatch(
            records=[r.model_copy(deep=True) for r in self.project_records],
            title="Roadmap",
            url=f"https://github.com/orgs/{organization}/projects/{project_number}",
        )

    async def list_subissues(self, key: IssueKey) -> IssueBatch:
        self.calls.append(("list_subissues", key))
        if self.failing_subissues:
            raise GitHubNotFoundError("sub-issues unavailable")
        return IssueBatch(
            records=[r.model_copy(deep=True) for r in self.subissues.get(key, [])],
            title=f"Sub-issues of {key}",
            url=f"https://github.com/{key.organization}/{key.repository}/issues/{key.number}",
        )

    async def list_comments_for_issue(self, key: IssueKey, num_comments: int) -> list[CommentRecord]:
        self.calls.append(("list_comments_for_issue", key))
        return list(self.comments.get(key, []))[-num_comments:]

    async def list_comments_for_issues(
        self, keys: Sequence[IssueKey], num_comments: int
    ) -> dict[IssueKey, list[CommentRecord]]:
        self.calls.append(("list_comments_for_issues", tuple(keys)))
        return {k: list(self.comments[k])[-num_comments:] for k in keys if k in self.comments}

    async def list_issue_fields(self, key: IssueKey) -> dict[str, FieldValue]:
        self.calls.append(("list_issue_fields", key))
        return dict(self.issue_fields.get(key, {}))

    async def list_project_fields_for_issue(
        self, key: IssueKey, project_number: int
    ) -> dict[str, FieldValue]:
        self.calls.append(("list_project_fields_for_issue", (key, project_number)))
        return dict(self.project_fields.get(key, {}))

    async def list_project_fields_for_project(
        self, organization: str, project_number: int
    ) -> list[ProjectItem]:
        self.calls.append(("list_project_fields_for_project", (organization, project_number)))
        return [ProjectItem(issue=k, fields=f) for k, f in self.project_fields.items()]

    async def get_project_view(
        self, organization: str, project_number: int, view_number: int
    ) -> ProjectViewRecord:
        self.calls.append(("get_project_view", view_number))
        return self.views[view_number]


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def config() -> RollupConfig:
    return RollupConfig(api_url=TEST_API_URL, token=TEST_TOKEN)


@pytest.fixture
def ctx(tracker: FakeTracker, config: RollupConfig) -> RollupContext:
    return RollupContext(tracker=tracker, config=config)


@pytest.fixture
def client(config: RollupConfig) -> GitHubClient:
    return GitHubClient(config)


@pytest.fixture
def mock_api() -> respx.MockRouter:
    with respx.mock(base_url=TEST_API_URL) as router:
        yield router
