"""Tests for the GitHub API client."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from issue_rollup.client import GitHubClient, parse_field_values
from issue_rollup.config import RollupConfig
from issue_rollup.exceptions import (
    ConfigurationError,
    GitHubApiError,
    GitHubAuthError,
    GitHubNotFoundError,
)
from issue_rollup.models import IssueKey

BASE = "https://api.github.test"


def _make_client() -> GitHubClient:
    return GitHubClient(RollupConfig(api_url=BASE, token="test-token"))


def _issue_node(number: int, **overrides) -> dict:
    node = {
        "number": number,
        "title": f"Issue {number}",
        "body": "Body",
        "url": f"https://github.com/acme/widgets/issues/{number}",
        "state": "OPEN",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-02T00:00:00Z",
        "issueType": {"name": "Bug"},
        "repository": {"name": "widgets", "nameWithOwner": "acme/widgets", "owner": {"login": "acme"}},
        "assignees": {"nodes": [{"login": "alice"}]},
        "labels": {"nodes": [{"name": "p1"}]},
        "parent": None,
    }
    node.update(overrides)
    return node


def _data(payload: dict) -> httpx.Response:
    return httpx.Response(200, json={"data": payload})


def _sent(route: respx.Route, index: int = -1) -> dict:
    return json.loads(route.calls[index].request.content)


def test_client_requires_token():
    with pytest.raises(ConfigurationError, match="GITHUB_TOKEN"):
        GitHubClient(RollupConfig(api_url=BASE, token=""))


class TestRequest:
    @pytest.mark.asyncio
    async def test_auth_header(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.post("/graphql").mock(return_value=httpx.Response(200, json={}))
            client = _make_client()
            await client.graphql("query { viewer { login } }")
            assert route.calls.last.request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_auth_error_401(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=httpx.Response(401, text="Bad credentials"))
            client = _make_client()
            with pytest.raises(GitHubAuthError) as exc_info:
                await client.graphql("query { viewer { login } }")
            assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_not_found_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=httpx.Response(404, text="Not Found"))
            client = _make_client()
            with pytest.raises(GitHubNotFoundError):
                await client.graphql("query { viewer { login } }")

    @pytest.mark.asyncio
    async def test_server_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=httpx.Response(502, text="Bad Gateway"))
            client = _make_client()
            with pytest.raises(GitHubApiError) as exc_info:
                await client.graphql("query { viewer { login } }")
            assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_html_response_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(
                return_value=httpx.Response(
                    200,
                    text="<html><body>Login</body></html>",
                    headers={"content-type": "text/html"},
                )
            )
            client = _make_client()
            with pytest.raises(GitHubApiError, match="HTML"):
                await client.graphql("query { viewer { login } }")

    @pytest.mark.asyncio
    async def test_json_parse_error(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(
                return_value=httpx.Response(
                    200, text="not json", headers={"content-type": "application/json"}
                )
            )
            client = _make_client()
            with pytest.raises(GitHubApiError, match="JSON parse error"):
                await client.graphql("query { viewer { login } }")

    @pytest.mark.asyncio
    async def test_graphql_errors_payload(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(
                return_value=httpx.Response(
                    200, json={"errors": [{"message": "Field 'nope' doesn't exist"}]}
                )
            )
            client = _make_client()
            with pytest.raises(GitHubApiError, match="doesn't exist"):
                await client.graphql("query { nope }")

    @pytest.mark.asyncio
    async def test_graphql_not_found_payload(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(
                return_value=httpx.Response(
                    200,
                    json={"errors": [{"type": "NOT_FOUND", "message": "Could not resolve"}]},
                )
            )
            client = _make_client()
            with pytest.raises(GitHubNotFoundError):
                await client.get_issue(IssueKey(organization="acme", repository="x", number=1))


class TestIssues:
    @pytest.mark.asyncio
    async def test_get_issue(self):
        async with respx.mock(base_url=BASE) as router:
            route = router.post("/graphql").mock(
                return_value=_data(
                    {
                        "repository": {
                            "issue": _issue_node(
                                7,
                                state="CLOSED",
                                parent={"title": "Epic", "url": "https://github.com/acme/widgets/issues/1", "number": 1},
                            )
                        }
                    }
                )
            )
            client = _make_client()
            record = await client.get_issue(IssueKey(organization="acme", repository="widgets", number=7))

        assert _sent(route)["variables"] == {"owner": "acme", "name": "widgets", "number": 7}
        assert record.number == 7
        assert record.is_open is False
        assert record.type == "Bug"
        assert record.repository.owner == "acme"
        assert record.assignees == ["alice"]
        assert record.labels == ["p1"]
        assert record.parent.title == "Epic"
        assert record.comments is None

    @pytest.mark.asyncio
    async def test_list_issues_for_repo_paginates(self):
        page_one = {
            "repository": {
                "nameWithOwner": "acme/widgets",
                "url": "https://github.com/acme/widgets",
                "issues": {
                    "pageInfo": {"hasNextPage": True, "endCursor": "abc"},
                    "nodes": [_issue_node(1), _issue_node(2)],
                },
            }
        }
        page_two = {
            "repository": {
                "nameWithOwner": "acme/widgets",
                "url": "https://github.com/acme/widgets",
                "issues": {
                    "pageInfo": {"hasNextPage": False, "endCursor": None},
                    "nodes": [_issue_node(3)],
                },
            }
        }
        async with respx.mock(base_url=BASE) as router:
            route = router.post("/graphql").mock(side_effect=[_data(page_one), _data(page_two)])
            client = _make_client()
            batch = await client.list_issues_for_repo("acme", "widgets")

        assert [r.number for r in batch.records] == [1, 2, 3]
        assert batch.title == "acme/widgets"
        assert batch.url == "https://github.com/acme/widgets/issues"
        assert _sent(route, 1)["variables"]["cursor"] == "abc"

    @pytest.mark.asyncio
    async def test_list_subissues_marks_records(self):
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(
                return_value=_data(
                    {
                        "repository": {
                            "issue": {
                                "title": "Epic",
                                "url": "https://github.com/acme/widgets/issues/1",
                                "subIssues": {"nodes": [_issue_node(2), _issue_node(3)]},
                            }
                        }
                    }
                )
            )
            client = _make_client()
            batch = await client.list_subissues(IssueKey(organization="acme", repository="widgets", number=1))

        assert [r.number for r in batch.records] == [2, 3]
        assert all(r.is_subissue for r in batch.records)

    @pytest.mark.asyncio
    async def test_list_issues_for_project_skips_non_issues(self):
        items = [
            {
                "content": {"__typename": "Issue", **_issue_node(4)},
                "fieldValues": {
                    "nodes": [
                        {
                            "__typename": "ProjectV2ItemFieldSingleSelectValue",
                            "name": "Doing",
                            "field": {"name": "Status", "options": [{"name": "Todo"}, {"name": "Doing"}]},
                        }
                    ]
                },
            },
            {"content": {"__typename": "DraftIssue"}, "fieldValues": {"nodes": []}},
        ]
        payload = {
            "organization": {
                "projectV2": {
                    "title": "Roadmap",
                    "url": "https://github.com/orgs/acme/projects/5",
                    "items": {"pageInfo": {"hasNextPage": False, "endCursor": None}, "nodes": items},
                }
            }
        }
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=_data(payload))
            client = _make_client()
            batch = await client.list_issues_for_project("acme", 5)

        assert batch.title == "Roadmap"
        assert len(batch.records) == 1
        project = batch.records[0].project
        assert project.number == 5
        assert project.fields["Status"].value == "Doing"
        assert project.fields["Status"].kind == "SingleSelect"
        assert project.fields["Status"].options == ["Todo", "Doing"]


class TestComments:
    @pytest.mark.asyncio
    async def test_batched_comments_are_keyed_back(self):
        first = IssueKey(organization="acme", repository="widgets", number=1)
        second = IssueKey(organization="acme", repository="gadgets", number=2)
        comment = {
            "author": {"login": "bob"},
            "body": "Update: on track",
            "url": "https://github.com/acme/widgets/issues/1#issuecomment-9",
            "createdAt": "2024-02-01T00:00:00Z",
            "updatedAt": None,
        }
        payload = {
            "i0": {"issue": {"comments": {"nodes": [comment]}}},
            "i1": {"issue": None},
        }
        async with respx.mock(base_url=BASE) as router:
            route = router.post("/graphql").mock(return_value=_data(payload))
            client = _make_client()
            result = await client.list_comments_for_issues([first, second], 5)

        sent = _sent(route)
        assert sent["variables"]["count"] == 5
        assert sent["variables"]["r1"] == "gadgets"
        assert "i1: repository(owner: $o1, name: $r1)" in sent["query"]
        assert list(result) == [first]
        assert result[first][0].author == "bob"
        assert result[first][0].updated_at is None

    @pytest.mark.asyncio
    async def test_no_keys_makes_no_request(self):
        async with respx.mock(base_url=BASE, assert_all_called=False) as router:
            route = router.post("/graphql")
            client = _make_client()
            assert await client.list_comments_for_issues([], 5) == {}
            assert not route.called


class TestProjects:
    @pytest.mark.asyncio
    async def test_project_fields_for_issue_picks_project(self):
        payload = {
            "repository": {
                "issue": {
                    "projectItems": {
                        "nodes": [
                            {
                                "project": {"number": 1},
                                "fieldValues": {"nodes": [{"__typename": "ProjectV2ItemFieldTextValue", "text": "old", "field": {"name": "Note"}}]},
                            },
                            {
                                "project": {"number": 2},
                                "fieldValues": {"nodes": [{"__typename": "ProjectV2ItemFieldNumberValue", "number": 3.0, "field": {"name": "Points"}}]},
                            },
                        ]
                    }
                }
            }
        }
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=_data(payload))
            client = _make_client()
            fields = await client.list_project_fields_for_issue(
                IssueKey(organization="acme", repository="widgets", number=1), 2
            )
        assert list(fields) == ["Points"]
        assert fields["Points"].kind == "Number"

    @pytest.mark.asyncio
    async def test_get_project_view(self):
        payload = {
            "organization": {
                "projectV2": {"view": {"number": 3, "name": "Board", "filter": "is:open label:bug"}}
            }
        }
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=_data(payload))
            client = _make_client()
            view = await client.get_project_view("acme", 5, 3)
        assert view.number == 3
        assert view.name == "Board"
        assert view.filter_query == "is:open label:bug"

    @pytest.mark.asyncio
    async def test_missing_project_view(self):
        payload = {"organization": {"projectV2": {"view": None}}}
        async with respx.mock(base_url=BASE) as router:
            router.post("/graphql").mock(return_value=_data(payload))
            client = _make_client()
            with pytest.raises(GitHubNotFoundError):
                await client.get_project_view("acme", 5, 99)


def test_parse_field_values_skips_unnamed_fields():
    nodes = [
        {"__typename": "ProjectV2ItemFieldTextValue", "text": "Title text", "field": {}},
        {"__typename": "ProjectV2ItemFieldDateValue", "date": "2024-03-01", "field": {"name": "Target Date"}},
        None,
    ]
    fields = parse_field_values(nodes)
    assert list(fields) == ["Target Date"]
    assert fields["Target Date"].kind == "Date"
    assert fields["Target Date"].value == "2024-03-01"
