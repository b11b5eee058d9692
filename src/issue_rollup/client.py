"""GitHub API client using httpx."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from .config import RollupConfig
from .exceptions import GitHubApiError, GitHubAuthError, GitHubNotFoundError
from .models import (
    CommentRecord,
    FieldValue,
    IssueBatch,
    IssueKey,
    IssueRecord,
    ParentRef,
    ProjectAssociation,
    ProjectItem,
    ProjectViewRecord,
    Repository,
)
from .tracker import IssueTracker

logger = logging.getLogger(__name__)

ISSUE_FRAGMENT = """
fragment IssueParts on Issue {
  number
  title
  body
  url
  state
  createdAt
  updatedAt
  issueType { name }
  repository { name nameWithOwner owner { login } }
  assignees(first: 20) { nodes { login } }
  labels(first: 50) { nodes { name } }
  parent { title url number }
}
"""

FIELD_VALUE_FRAGMENT = """
fragment FieldValueParts on ProjectV2ItemFieldValue {
  __typename
  ... on ProjectV2ItemFieldTextValue { text field { ... on ProjectV2FieldCommon { name } } }
  ... on ProjectV2ItemFieldNumberValue { number field { ... on ProjectV2FieldCommon { name } } }
  ... on ProjectV2ItemFieldDateValue { date field { ... on ProjectV2FieldCommon { name } } }
  ... on ProjectV2ItemFieldIterationValue { title field { ... on ProjectV2FieldCommon { name } } }
  ... on ProjectV2ItemFieldSingleSelectValue {
    name
    field { ... on ProjectV2SingleSelectField { name options { name } } }
  }
}
"""

REPO_ISSUES_QUERY = (
    """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    nameWithOwner
    url
    issues(first: 100, after: $cursor, states: OPEN) {
      pageInfo { hasNextPage endCursor }
      nodes { ...IssueParts }
    }
  }
}
"""
    + ISSUE_FRAGMENT
)

ISSUE_QUERY = (
    """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) { ...IssueParts }
  }
}
"""
    + ISSUE_FRAGMENT
)

SUBISSUES_QUERY = (
    """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      title
      url
      subIssues(first: 100) { nodes { ...IssueParts } }
    }
  }
}
"""
    + ISSUE_FRAGMENT
)

PROJECT_ITEMS_QUERY = (
    """
query($org: String!, $number: Int!, $cursor: String) {
  organization(login: $org) {
    projectV2(number: $number) {
      title
      url
      items(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          content { __typename ... on Issue { ...IssueParts } }
          fieldValues(first: 50) { nodes { ...FieldValueParts } }
        }
      }
    }
  }
}
"""
    + ISSUE_FRAGMENT
    + FIELD_VALUE_FRAGMENT
)

ISSUE_PROJECT_FIELDS_QUERY = (
    """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      projectItems(first: 20) {
        nodes {
          project { number }
          fieldValues(first: 50) { nodes { ...FieldValueParts } }
        }
      }
    }
  }
}
"""
    + FIELD_VALUE_FRAGMENT
)

ISSUE_FIELDS_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      issueFieldValues(first: 50) {
        nodes {
          __typename
          ... on IssueFieldTextValue { value field { ... on IssueFieldText { name } } }
          ... on IssueFieldNumberValue { value field { ... on IssueFieldNumber { name } } }
          ... on IssueFieldDateValue { value field { ... on IssueFieldDate { name } } }
          ... on IssueFieldSingleSelectValue {
            name
            field { ... on IssueFieldSingleSelect { name options { name } } }
          }
        }
      }
    }
  }
}
"""

PROJECT_VIEW_QUERY = """
query($org: String!, $number: Int!, $view: Int!) {
  organization(login: $org) {
    projectV2(number: $number) {
      view(number: $view) { number name filter }
    }
  }
}
"""

COMMENT_FIELDS = "nodes { author { login } body url createdAt updatedAt }"


def _field_kind(typename: str) -> str:
    for kind in ("SingleSelect", "Iteration", "Number", "Date"):
        if kind in typename:
            return kind
    return "Text"


def parse_field_values(nodes: Sequence[dict[str, Any] | None]) -> dict[str, FieldValue]:
    """Convert project or issue field value nodes into FieldValues keyed by field name."""
    fields: dict[str, FieldValue] = {}
    for node in nodes:
        field = (node or {}).get("field") or {}
        name = field.get("name")
        if not name:
            continue  # Built-in project fields (Title, Assignees...) carry no name here
        kind = _field_kind(node.get("__typename", ""))
        value: Any = None
        for key in ("text", "number", "date", "name", "title", "value"):
            if node.get(key) is not None:
                value = node[key]
                break
        fields[name] = FieldValue(
            kind=kind,
            value=value,
            options=[option["name"] for option in field.get("options") or []],
        )
    return fields


def parse_issue(node: dict[str, Any], *, is_subissue: bool = False) -> IssueRecord:
    repository = node["repository"]
    parent = node.get("parent")
    return IssueRecord(
        number=node["number"],
        title=node.get("title") or "",
        body=node.get("body"),
        url=node.get("url") or "",
        is_open=node.get("state", "OPEN") == "OPEN",
        created_at=node["createdAt"],
        updated_at=node["updatedAt"],
        type=(node.get("issueType") or {}).get("name", ""),
        repository=Repository(
            name=repository["name"],
            owner=repository["owner"]["login"],
            name_with_owner=repository.get("nameWithOwner", ""),
        ),
        assignees=[a["login"] for a in (node.get("assignees") or {}).get("nodes", [])],
        labels=[label["name"] for label in (node.get("labels") or {}).get("nodes", [])],
        parent=ParentRef(**parent) if parent else None,
        is_subissue=is_subissue,
    )


def parse_comment(node: dict[str, Any]) -> CommentRecord:
    return CommentRecord(
        author=(node.get("author") or {}).get("login", "ghost"),
        body=node.get("body") or "",
        url=node.get("url") or "",
        created_at=node["createdAt"],
        updated_at=node.get("updatedAt"),
    )


class GitHubClient(IssueTracker):
    """Async HTTP client for the GitHub GraphQL API."""

    def __init__(self, config: RollupConfig | None = None) -> None:
        self.config = config or RollupConfig.from_env()
        self.config.validate()
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                "Authorization": f"Bearer {self.config.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=self.config.timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── HTTP helpers ──────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request and return parsed JSON."""
        kwargs: dict[str, Any] = {"params": params}
        if json_data is not None:
            kwargs["json"] = json_data

        resp = await self._client.request(method, path, **kwargs)

        if resp.status_code in (401, 403):
            raise GitHubAuthError(resp.status_code, resp.text)
        if resp.status_code == 404:
            raise GitHubNotFoundError(resp.text)
        if not resp.is_success:
            raise GitHubApiError(resp.status_code, resp.reason_phrase or "", resp.text)

        if resp.status_code == 204 or not resp.content:
            return None

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            msg = "Unexpected HTML response, check URL and authentication"
            raise GitHubApiError(resp.status_code, msg, resp.text[:500])

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise GitHubApiError(
                resp.status_code,
                f"JSON parse error: {e}",
                resp.text[:500],
            ) from e

    async def post(self, path: str, json_data: Any = None, **kwargs: Any) -> Any:
        return await self._request("POST", path, json_data=json_data, **kwargs)

    async def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data``."""
        payload = await self.post("/graphql", {"query": query, "variables": variables or {}})
        errors = (payload or {}).get("errors")
        if errors:
            messages = "; ".join(e.get("message", "") for e in errors)
            if any(e.get("type") == "NOT_FOUND" for e in errors):
                raise GitHubNotFoundError(messages)
            raise GitHubApiError(200, "GraphQL Error", messages)
        return payload.get("data") or {}

    # ── Issues ────────────────────────────────────────────────────

    async def get_issue(self, key: IssueKey) -> IssueRecord:
        data = await self.graphql(
            ISSUE_QUERY,
            {"owner": key.organization, "name": key.repository, "number": key.number},
        )
        node = (data.get("repository") or {}).get("issue")
        if node is None:
            raise GitHubNotFoundError(f"Issue {key} not found")
        return parse_issue(node)

    async def list_issues_for_repo(self, organization: str, repository: str) -> IssueBatch:
        records: list[IssueRecord] = []
        cursor = None
        title = f"{organization}/{repository}"
        url = f"https://github.com/{organization}/{repository}/issues"
        while True:
            data = await self.graphql(
                REPO_ISSUES_QUERY,
                {"owner": organization, "name": repository, "cursor": cursor},
            )
            repo = data.get("repository")
            if repo is None:
                raise GitHubNotFoundError(f"Repository {title} not found")
            title = repo.get("nameWithOwner") or title
            url = f"{repo.get('url') or url.removesuffix('/issues')}/issues"
            issues = repo["issues"]
            records.extend(parse_issue(node) for node in issues["nodes"] if node)
            if not issues["pageInfo"]["hasNextPage"]:
                break
            cursor = issues["pageInfo"]["endCursor"]

        logger.debug("Fetched %d issues for %s", len(records), title)
        return IssueBatch(records=records, title=title, url=url)

    async def list_issues_for_project(self, organization: str, project_number: int) -> IssueBatch:
        project, items = await self._list_project_items(organization, project_number)
        records = []
        for item in items:
            content = item.get("content") or {}
            if content.get("__typename") != "Issue":
                continue  # Pull requests and draft items
            record = parse_issue(content)
            record.project = ProjectAssociation(
                organization=organization,
                number=project_number,
                fields=parse_field_values(item["fieldValues"]["nodes"]),
            )
            records.append(record)
        logger.debug("Fetched %d issues for project %s/%d", len(records), organization, project_number)
        return IssueBatch(
            records=records,
            title=project.get("title") or f"Project #{project_number}",
            url=project.get("url") or f"https://github.com/orgs/{organization}/projects/{project_number}",
        )

    async def list_subissues(self, key: IssueKey) -> IssueBatch:
        data = await self.graphql(
            SUBISSUES_QUERY,
            {"owner": key.organization, "name": key.repository, "number": key.number},
        )
        node = (data.get("repository") or {}).get("issue")
        if node is None:
            raise GitHubNotFoundError(f"Issue {key} not found")
        records = [parse_issue(n, is_subissue=True) for n in node["subIssues"]["nodes"] if n]
        return IssueBatch(records=records, title=f"Sub-issues of {node.get('title', key)}", url=node.get("url", ""))

    # ── Comments ──────────────────────────────────────────────────

    async def list_comments_for_issue(self, key: IssueKey, num_comments: int) -> list[CommentRecord]:
        comments = await self.list_comments_for_issues([key], num_comments)
        return comments.get(key, [])

    async def list_comments_for_issues(
        self, keys: Sequence[IssueKey], num_comments: int
    ) -> dict[IssueKey, list[CommentRecord]]:
        """One aliased query for every issue, keyed back to the requested issues."""
        if not keys:
            return {}

        declarations = []
        selections = []
        variables: dict[str, Any] = {"count": num_comments}
        for i, key in enumerate(keys):
            declarations.append(f"$o{i}: String!, $r{i}: String!, $n{i}: Int!")
            selections.append(
                f"i{i}: repository(owner: $o{i}, name: $r{i}) "
                f"{{ issue(number: $n{i}) {{ comments(last: $count) {{ {COMMENT_FIELDS} }} }} }}"
            )
            variables.update({f"o{i}": key.organization, f"r{i}": key.repository, f"n{i}": key.number})
        query = f"query($count: Int!, {', '.join(declarations)}) {{\n" + "\n".join(selections) + "\n}"

        data = await self.graphql(query, variables)
        result: dict[IssueKey, list[CommentRecord]] = {}
        for i, key in enumerate(keys):
            issue = (data.get(f"i{i}") or {}).get("issue")
            if issue is None:
                continue
            result[key] = [parse_comment(node) for node in issue["comments"]["nodes"] if node]
        logger.debug("Fetched comments for %d of %d issues", len(result), len(keys))
        return result

    # ── Fields ────────────────────────────────────────────────────

    async def list_issue_fields(self, key: IssueKey) -> dict[str, FieldValue]:
        data = await self.graphql(
            ISSUE_FIELDS_QUERY,
            {"owner": key.organization, "name": key.repository, "number": key.number},
        )
        issue = (data.get("repository") or {}).get("issue") or {}
        return parse_field_values((issue.get("issueFieldValues") or {}).get("nodes", []))

    async def list_project_fields_for_issue(
        self, key: IssueKey, project_number: int
    ) -> dict[str, FieldValue]:
        data = await self.graphql(
            ISSUE_PROJECT_FIELDS_QUERY,
            {"owner": key.organization, "name": key.repository, "number": key.number},
        )
        issue = (data.get("repository") or {}).get("issue") or {}
        for item in (issue.get("projectItems") or {}).get("nodes", []):
            if item and item["project"]["number"] == project_number:
                return parse_field_values(item["fieldValues"]["nodes"])
        return {}

    async def list_project_fields_for_project(
        self, organization: str, project_number: int
    ) -> list[ProjectItem]:
        _, items = await self._list_project_items(organization, project_number)
        result = []
        for item in items:
            content = item.get("content") or {}
            if content.get("__typename") != "Issue":
                continue
            repository = content["repository"]
            result.append(
                ProjectItem(
                    issue=IssueKey(
                        organization=repository["owner"]["login"],
                        repository=repository["name"],
                        number=content["number"],
                    ),
                    fields=parse_field_values(item["fieldValues"]["nodes"]),
                )
            )
        return result

    async def _list_project_items(
        self, organization: str, project_number: int
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        items: list[dict[str, Any]] = []
        cursor = None
        while True:
            data = await self.graphql(
                PROJECT_ITEMS_QUERY,
                {"org": organization, "number": project_number, "cursor": cursor},
            )
            project = (data.get("organization") or {}).get("projectV2")
            if project is None:
                raise GitHubNotFoundError(f"Project {organization}/#{project_number} not found")
            page = project["items"]
            items.extend(node for node in page["nodes"] if node)
            if not page["pageInfo"]["hasNextPage"]:
                return project, items
            cursor = page["pageInfo"]["endCursor"]

    # ── Projects ──────────────────────────────────────────────────

    async def get_project_view(
        self, organization: str, project_number: int, view_number: int
    ) -> ProjectViewRecord:
        data = await self.graphql(
            PROJECT_VIEW_QUERY,
            {"org": organization, "number": project_number, "view": view_number},
        )
        project = (data.get("organization") or {}).get("projectV2") or {}
        view = project.get("view")
        if view is None:
            raise GitHubNotFoundError(
                f"View #{view_number} of project {organization}/#{project_number} not found"
            )
        return ProjectViewRecord(
            number=view.get("number"),
            name=view.get("name") or "",
            filter_query=view.get("filter") or "",
        )
