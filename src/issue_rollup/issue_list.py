"""Named, ordered collections of issues and the bulk operations over them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Iterator
from functools import cmp_to_key
from typing import Any
from urllib.parse import quote

from .charts import bar_chart
from .context import RollupContext
from .emoji import status_compare
from .exceptions import ConfigurationError, ConsistencyError, InvalidUrlError
from .issue import IssueWrapper
from .models import IssueBatch, IssueKey, ProjectAssociation
from .options import FetchParameters, validate_fetch_parameters, validate_render_options
from .project_view import ProjectView
from .render import RenderedFragment, render_issue_list
from .text import title_case
from .urls import match_project_view_url

logger = logging.getLogger(__name__)

SORT_DIRECTIONS = ("asc", "desc")


class IssueList:
    """An ordered group of issues sharing a source of truth (title and url).

    Sorting, view filtering and fetching mutate the collection in place and return
    it for chaining. copy(), blame() and group_by() return new collections that
    share the underlying IssueWrapper objects.
    """

    def __init__(
        self,
        ctx: RollupContext,
        issues: Iterable[IssueWrapper] = (),
        *,
        title: str,
        url: str,
        group_key: str | None = None,
    ) -> None:
        self.ctx = ctx
        self._issues = list(issues)
        self._title = title
        self._url = url
        self._group_key = group_key

        self.organization: str | None = None  # All issues from the same org
        self.project_number: int | None = None  # All issues from the same project

        self.comments_fetched = False
        self.project_fields_fetched = False

    # ── Constructors ──────────────────────────────────────────────

    @classmethod
    def from_batch(cls, ctx: RollupContext, batch: IssueBatch) -> IssueList:
        return cls(
            ctx,
            (IssueWrapper(ctx, record) for record in batch.records),
            title=batch.title,
            url=batch.url,
        )

    @classmethod
    def null(cls, ctx: RollupContext) -> IssueList:
        return cls(ctx, title="No Issues", url="")

    @classmethod
    async def for_repo(
        cls,
        ctx: RollupContext,
        organization: str,
        repository: str,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueList:
        batch = await ctx.tracker.list_issues_for_repo(organization, repository)
        issues = cls.from_batch(ctx, batch)
        issues.organization = organization
        return await issues.fetch(params)

    @classmethod
    async def for_subissues(
        cls,
        ctx: RollupContext,
        key: IssueKey,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueList:
        try:
            batch = await ctx.tracker.list_subissues(key)
        except Exception as e:
            # The sub-issues endpoint fails now and then, a parent without them still renders
            logger.warning("Could not fetch Subissues for %s: %s", key, e)
            return cls.null(ctx)

        issues = cls.from_batch(ctx, batch)
        issues.organization = key.organization
        return await issues.fetch(params)

    @classmethod
    async def for_project(
        cls,
        ctx: RollupContext,
        organization: str,
        project_number: int,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueList:
        batch = await ctx.tracker.list_issues_for_project(organization, project_number)
        issues = cls.from_batch(ctx, batch)
        issues.organization = organization
        issues.project_number = project_number
        # Project items arrive with their field values
        issues.project_fields_fetched = True
        return await issues.fetch(params)

    @classmethod
    async def for_project_view(
        cls,
        ctx: RollupContext,
        organization: str,
        project_number: int,
        *,
        view_number: int | None = None,
        custom_query: str | None = None,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueList:
        if view_number is None:
            if custom_query is None:
                raise ConfigurationError("Either view_number or custom_query must be provided.")
            view = ProjectView(project_number=project_number, filter_query=custom_query)
        else:
            record = await ctx.tracker.get_project_view(organization, project_number, view_number)
            view = ProjectView.from_record(project_number, record)

        batch = await ctx.tracker.list_issues_for_project(organization, project_number)
        issues = cls.from_batch(ctx, batch)
        issues.organization = organization
        issues.project_number = project_number
        issues.project_fields_fetched = True
        await issues.apply_view(view)
        return await issues.fetch(params)

    @classmethod
    async def for_project_view_url(
        cls,
        ctx: RollupContext,
        url: str,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueList:
        match = match_project_view_url(url)
        if match is None:
            raise InvalidUrlError(url, "Invalid Project URL")
        if match.project_view_number is None and match.custom_query is None:
            return await cls.for_project(ctx, match.organization, match.project_number, params)
        return await cls.for_project_view(
            ctx,
            match.organization,
            match.project_number,
            view_number=match.project_view_number,
            custom_query=match.custom_query,
            params=params,
        )

    @classmethod
    async def for_urls(
        cls,
        ctx: RollupContext,
        urls: Iterable[str],
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueList:
        """Resolve each URL independently; URLs that fail are logged and left out."""
        urls = list(urls)

        async def resolve(url: str) -> IssueWrapper | None:
            try:
                record = await ctx.tracker.get_issue(IssueWrapper.key_from_url(url))
            except Exception as e:
                logger.warning("Could not fetch Issue from URL %s: %s", url, e)
                return None
            return IssueWrapper(ctx, record)

        resolved = await asyncio.gather(*(resolve(url) for url in urls))
        found = [issue for issue in resolved if issue is not None]
        if urls and not found:
            return cls.null(ctx)

        issues = cls(ctx, found, title="Issues from URLs", url="Multiple URLs")
        return await issues.fetch(params)

    # ── Array-like ────────────────────────────────────────────────

    def all(self) -> list[IssueWrapper]:
        return self._issues

    def filter(self, predicate: Callable[[IssueWrapper], bool]) -> list[IssueWrapper]:
        return [issue for issue in self._issues if predicate(issue)]

    def __len__(self) -> int:
        return len(self._issues)

    def __iter__(self) -> Iterator[IssueWrapper]:
        return iter(self._issues)

    @property
    def is_empty(self) -> bool:
        return not self._issues

    def _find(self, key: IssueKey) -> IssueWrapper | None:
        return next((issue for issue in self._issues if issue.key == key), None)

    def _find_all(self, key: IssueKey) -> list[IssueWrapper]:
        return [issue for issue in self._issues if issue.key == key]

    def copy(self) -> IssueList:
        """Shallow copy: a new list of the same issues, with the same fetch state."""
        clone = IssueList(
            self.ctx, self._issues, title=self._title, url=self._url, group_key=self._group_key
        )
        clone.organization = self.organization
        clone.project_number = self.project_number
        clone.comments_fetched = self.comments_fetched
        clone.project_fields_fetched = self.project_fields_fetched
        return clone

    # ── Properties ────────────────────────────────────────────────

    @property
    def header(self) -> str:
        return f"[{self._title}]({self._url})"

    @property
    def title(self) -> str:
        return self._title

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_grouped(self) -> bool:
        return self._group_key is not None

    @property
    def group_key(self) -> str:
        if self._group_key is None:
            raise ConfigurationError("Don't use group_key without a group_by.")
        return self._group_key

    # ── Fetching ──────────────────────────────────────────────────

    async def fetch(self, params: FetchParameters | dict[str, Any] | None = None) -> IssueList:
        """Enrich the collection, then filter, then enrich each remaining issue.

        The filter runs after project fields and comments are in place but before
        sub-issues and related issues are fetched.
        """
        params = validate_fetch_parameters(params)
        if params.project_fields and self.project_number:
            await self.fetch_project_fields(self.project_number)
        if params.comments > 0:
            await self._fetch_comments(params.comments)

        self._issues = self.filter(params.filter)

        await asyncio.gather(*(issue.fetch(params) for issue in self._issues))
        return self

    async def _fetch_comments(self, num_comments: int) -> None:
        if self.comments_fetched:
            return

        timeframe = self.ctx.timeframe
        # Duplicate members share one slot in the request
        keys = list(
            dict.fromkeys(
                issue.key
                for issue in self._issues
                if not issue.has_comments and issue.was_updated_within(timeframe)
            )
        )
        if keys:
            logger.debug("Fetching comments for %d issues in one request", len(keys))
            comments_by_issue = await self.ctx.tracker.list_comments_for_issues(keys, num_comments)
            for key, comments in comments_by_issue.items():
                matches = self._find_all(key)
                if not matches:
                    # Catches membership changing while the request was in flight
                    raise ConsistencyError(f"Fetched Comments for nonexistent Issue {key}")
                for issue in matches:
                    issue.comments = comments
            for key in keys:
                if key not in comments_by_issue:
                    for issue in self._find_all(key):
                        issue.comments = []

        self.comments_fetched = True

    async def fetch_project_fields(self, project_number: int | None = None) -> None:
        if self.project_fields_fetched:
            return

        if not self.project_number and project_number:
            self.project_number = project_number
        if not self.organization or not self.project_number:
            msg = "Cannot fetch Project Fields without a common organization and project_number."
            raise ConsistencyError(msg)

        items = await self.ctx.tracker.list_project_fields_for_project(
            self.organization, self.project_number
        )

        for issue in self._issues:
            if issue.project_number is None:
                issue.attach_project(
                    ProjectAssociation(organization=self.organization, number=self.project_number)
                )
        for item in items:
            for issue in self._find_all(item.issue):
                issue.attach_project(
                    ProjectAssociation(
                        organization=self.organization,
                        number=self.project_number,
                        fields=item.fields,
                    )
                )

        self.project_fields_fetched = True

    # ── Transformations ───────────────────────────────────────────

    async def apply_view(self, view: ProjectView) -> IssueList:
        """Filter in place by a project view and scope the title and url to it."""
        if view.uses_custom_fields:
            await self.fetch_project_fields(view.project_number)

        if view.number:
            self._url += f"/views/{view.number}"
        else:
            self._url += f"?filterQuery={quote(view.filter_query, safe='')}"
        if view.name:
            self._title += f" ({view.name})"

        if view.unsupported_fields:
            logger.warning(
                'View "%s" uses unsupported filters: %s. These filters are ignored.',
                self._url,
                ", ".join(view.unsupported_fields),
            )

        self._issues = self.filter(view.filter_issue)
        return self

    def sort(self, field_name: str, direction: str = "asc") -> IssueList:
        """Stable in-place sort by status, status emoji first, then lexically."""
        if direction not in SORT_DIRECTIONS:
            raise ConfigurationError(f'Invalid sort direction: "{direction}". Use "asc" or "desc".')
        sign = 1 if direction == "asc" else -1

        def compare(a: IssueWrapper, b: IssueWrapper) -> int:
            return sign * status_compare(a.status(field_name), b.status(field_name))

        self._issues.sort(key=cmp_to_key(compare))
        return self

    def group_by(self, field_name: str) -> list[IssueList]:
        """Split into one collection per status value, ordered like sort()."""
        groups: dict[str, IssueList] = {}
        for issue in self._issues:
            key = issue.status_value(field_name)
            if key not in groups:
                groups[key] = IssueList(
                    self.ctx,
                    title=self._title,
                    url=self._url,
                    # Matches how GitHub Projects labels an empty group
                    group_key=key or f"No {title_case(field_name)}",
                )
            groups[key]._issues.append(issue)

        ordered = sorted(
            groups.values(),
            key=cmp_to_key(lambda a, b: status_compare(a.group_key, b.group_key)),
        )
        for group in ordered:
            group.organization = self.organization
            group.project_number = self.project_number
            group.comments_fetched = self.comments_fetched
            group.project_fields_fetched = self.project_fields_fetched
        return ordered

    def status(self, field_name: str) -> str | None:
        """The highest-priority status across the issues."""
        statuses = sorted(
            (issue.status(field_name) for issue in self._issues), key=cmp_to_key(status_compare)
        )
        return statuses[0] if statuses else None

    def chart(self, field_name: str, title: str | None = None) -> str:
        groups = self.group_by(field_name)
        if not groups:
            return "ERROR: No issues found. Cannot create chart."
        return bar_chart(
            {group.group_key: len(group) for group in groups},
            field_name,
            title or f"Number of Issues by {field_name}",
        )

    # ── Updates ───────────────────────────────────────────────────

    @property
    def has_updates(self) -> bool:
        return any(issue.comments.has_update for issue in self._issues)

    def blame(self, strategies: str | list[str] | None = None) -> IssueList:
        """Copy holding only the issues without a recognizable recent update."""
        stale = self.copy()
        stale._issues = stale.filter(lambda issue: not issue.comments.latest_updates(1, strategies))
        stale._title += " - Stale Updates"
        return stale

    # ── Slack ─────────────────────────────────────────────────────

    async def dm_assignees(self, message: str) -> None:
        await asyncio.gather(*(issue.dm_assignees(message) for issue in self._issues))

    # ── Rendering ─────────────────────────────────────────────────

    def remember(self, options: dict[str, Any] | None = None, **kwargs: Any) -> RenderedFragment | None:
        rendered = render_issue_list(self, validate_render_options(options, **kwargs))
        if rendered is not None:
            self.ctx.memory.remember(rendered.markdown, rendered.sources)
        return rendered

    def render(self, options: dict[str, Any] | None = None, **kwargs: Any) -> str:
        rendered = self.remember(options, **kwargs)
        return rendered.markdown if rendered else ""

    def __repr__(self) -> str:
        return f"IssueList({self._title!r}, {len(self)} issues)"
