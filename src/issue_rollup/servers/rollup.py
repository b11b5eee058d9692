"""Issue Rollup MCP server: tool registrations."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from ..client import GitHubClient
from ..config import RollupConfig
from ..context import RollupContext
from ..issue import IssueWrapper
from ..issue_list import IssueList
from ..memory import Memory
from ..notify import SlackClient
from ..render import RenderedFragment


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    config = RollupConfig.from_env()
    config.validate()
    client = GitHubClient(config)
    slack = None
    if config.slack_token:
        slack = SlackClient(
            config.slack_token,
            default_channel=config.slack_default_channel,
            mute=config.slack_mute,
            timeout=config.timeout,
        )
    try:
        yield {"client": client, "config": config, "slack": slack}
    finally:
        await client.close()
        if slack is not None:
            await slack.close()


mcp = FastMCP(
    name="Issue Rollup",
    instructions=(
        "Renders rollups of GitHub issues: their latest status updates, sub-issues,"
        " linked issues and project fields, as markdown with the URLs it was built from."
    ),
    lifespan=lifespan,
)


def _get_context(ctx: Context) -> RollupContext:
    """A fresh rollup context per tool call, so sources never leak between calls."""
    state = ctx.request_context.lifespan_context
    return RollupContext(
        tracker=state["client"],
        config=state["config"],
        memory=Memory(),
        slack=state.get("slack"),
    )


def _ok(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _rendered(rendered: RenderedFragment | None) -> str:
    if rendered is None:
        return _ok({"markdown": "", "sources": []})
    return _ok({"markdown": rendered.markdown, "sources": rendered.sources})


def _err(error: Exception) -> str:
    detail: dict[str, Any] = {"error": str(error)}
    from ..exceptions import (
        ConfigurationError,
        ConsistencyError,
        GitHubApiError,
        GitHubAuthError,
        GitHubNotFoundError,
        InvalidUrlError,
    )

    if isinstance(error, GitHubNotFoundError):
        detail["status_code"] = error.status_code
        detail["body"] = error.body
        detail["hint"] = "Verify the owner, repository, issue or project number exists."
    elif isinstance(error, GitHubAuthError):
        detail["status_code"] = error.status_code
        detail["body"] = error.body
        detail["hint"] = "Check GITHUB_TOKEN permissions. Token needs 'repo' and 'read:project' scopes."
    elif isinstance(error, GitHubApiError):
        detail["status_code"] = error.status_code
        detail["body"] = error.body
        if error.status_code == 429:
            detail["hint"] = "Rate limited. Wait before retrying."
    elif isinstance(error, InvalidUrlError):
        detail["hint"] = "Use a URL like https://github.com/<owner>/<repo>/issues/<number>."
    elif isinstance(error, ConfigurationError):
        detail["hint"] = "Check option names and values."
    elif isinstance(error, ConsistencyError):
        detail["hint"] = "An issue can only belong to one project per rollup."
    return json.dumps(detail, indent=2, ensure_ascii=False)


def _render_options(fields: list[str] | None, updates: int, body: bool) -> dict[str, Any]:
    options: dict[str, Any] = {"updates": updates, "body": body, "skip_if_empty": False}
    if fields:
        options["fields"] = fields
    return options


def _render_lists(lists: list[IssueList], options: dict[str, Any]) -> str:
    markdown = ""
    sources: list[str] = []
    for issues in lists:
        rendered = issues.remember(options)
        if rendered is not None:
            markdown += rendered.markdown
            sources.extend(rendered.sources)
    return _ok({"markdown": markdown, "sources": sources})


# ════════════════════════════════════════════════════════════════════
# Rollups
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"github", "issues", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def rollup_render_repo_issues(
    ctx: Context,
    organization: Annotated[str, Field(description="Repository owner", min_length=1)],
    repository: Annotated[str, Field(description="Repository name", min_length=1)],
    updates: Annotated[int, Field(description="Updates to render per issue", ge=0)] = 1,
    body: Annotated[bool, Field(description="Render issue bodies")] = False,
    fields: Annotated[list[str] | None, Field(description="Fields to render per issue")] = None,
    subissues: Annotated[bool, Field(description="Fetch and render sub-issues")] = False,
    follow_links: Annotated[bool, Field(description="Follow issue links in updates")] = False,
    sort_by: Annotated[str | None, Field(description="Field to sort by")] = None,
) -> str:
    """Render the latest updates of every open issue in a repository."""
    try:
        rollup = _get_context(ctx)
        issues = await IssueList.for_repo(
            rollup,
            organization,
            repository,
            {"issue_fields": True, "subissues": subissues, "follow_links": follow_links},
        )
        if sort_by:
            issues.sort(sort_by)
        return _rendered(issues.remember(_render_options(fields, updates, body)))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"github", "issues", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def rollup_render_issue(
    ctx: Context,
    url: Annotated[str, Field(description="GitHub issue URL", min_length=1)],
    updates: Annotated[int, Field(description="Updates to render", ge=0)] = 1,
    body: Annotated[bool, Field(description="Render the issue body")] = False,
    fields: Annotated[list[str] | None, Field(description="Fields to render")] = None,
    subissues: Annotated[bool, Field(description="Fetch and render sub-issues")] = True,
    follow_links: Annotated[bool, Field(description="Follow issue links in updates")] = True,
) -> str:
    """Render one issue with its latest updates, sub-issues and linked issues."""
    try:
        rollup = _get_context(ctx)
        issue = await IssueWrapper.for_url(
            rollup,
            url,
            {"issue_fields": True, "subissues": subissues, "follow_links": follow_links},
        )
        return _rendered(issue.remember(_render_options(fields, updates, body)))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"github", "projects", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def rollup_render_project(
    ctx: Context,
    url: Annotated[
        str,
        Field(
            description="Project URL, optionally a view or with a filterQuery parameter",
            min_length=1,
        ),
    ],
    updates: Annotated[int, Field(description="Updates to render per issue", ge=0)] = 1,
    fields: Annotated[list[str] | None, Field(description="Fields to render per issue")] = None,
    group_by: Annotated[str | None, Field(description="Field to group issues by")] = None,
    sort_by: Annotated[str | None, Field(description="Field to sort by")] = None,
    subissues: Annotated[bool, Field(description="Fetch and render sub-issues")] = False,
) -> str:
    """Render the issues of a project (or project view), optionally grouped by a field."""
    try:
        rollup = _get_context(ctx)
        issues = await IssueList.for_project_view_url(
            rollup, url, {"project_fields": True, "subissues": subissues}
        )
        if sort_by:
            issues.sort(sort_by)
        options = _render_options(fields, updates, False)
        if group_by:
            return _render_lists(issues.group_by(group_by), options)
        return _rendered(issues.remember(options))
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"github", "projects", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def rollup_chart_project(
    ctx: Context,
    url: Annotated[str, Field(description="Project or project view URL", min_length=1)],
    field: Annotated[str, Field(description="Field to count issues by", min_length=1)],
    title: Annotated[str | None, Field(description="Chart title")] = None,
) -> str:
    """Chart the number of project issues per field value."""
    try:
        rollup = _get_context(ctx)
        issues = await IssueList.for_project_view_url(
            rollup, url, {"project_fields": True, "comments": 0}
        )
        return _ok({"markdown": issues.chart(field, title), "sources": [issues.url]})
    except Exception as e:
        return _err(e)


@mcp.tool(
    tags={"github", "issues", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def rollup_blame_repo(
    ctx: Context,
    organization: Annotated[str, Field(description="Repository owner", min_length=1)],
    repository: Annotated[str, Field(description="Repository name", min_length=1)],
    strategies: Annotated[
        str | None,
        Field(description="Comma-separated update strategies, e.g. 'marker,keyword'"),
    ] = None,
) -> str:
    """List the open issues of a repository that have no recent update."""
    try:
        rollup = _get_context(ctx)
        issues = await IssueList.for_repo(rollup, organization, repository)
        stale = issues.blame(strategies)
        return _ok(
            {
                "title": stale.title,
                "count": len(stale),
                "issues": [
                    {"title": issue.title, "url": issue.url, "assignees": issue.assignees}
                    for issue in stale
                ],
            }
        )
    except Exception as e:
        return _err(e)
