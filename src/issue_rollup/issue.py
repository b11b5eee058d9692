"""A single issue and the memoized steps that enrich it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .comments import CommentList
from .context import RollupContext
from .exceptions import ConfigurationError, ConsistencyError, InvalidUrlError
from .fields import BuiltinField, builtin_field, map_fields_to_string, slugify_field_name
from .models import CommentRecord, FieldValue, IssueKey, IssueRecord, ParentRef, ProjectAssociation
from .notify import SLACK_FOOTER, slack_link
from .options import FetchParameters, validate_fetch_parameters, validate_render_options
from .render import RenderedFragment, render_issue
from .update_detection import within_days, within_timeframe
from .urls import match_issue_url, scrape_issue_urls

if TYPE_CHECKING:
    from .issue_list import IssueList

logger = logging.getLogger(__name__)

_BUILTIN_ATTRIBUTES = {
    BuiltinField.TITLE: "title",
    BuiltinField.URL: "url",
    BuiltinField.NUMBER: "number",
    BuiltinField.BODY: "body",
    BuiltinField.TYPE: "type",
    BuiltinField.REPOSITORY: "repository",
    BuiltinField.OWNER: "owner",
    BuiltinField.NAME_WITH_OWNER: "repo_name_with_owner",
    BuiltinField.PARENT_TITLE: "parent_title",
    BuiltinField.PARENT_URL: "parent_url",
}


class IssueWrapper:
    """One tracked issue plus its enrichment state.

    Enrichment is idempotent: comments, issue fields, project fields, sub-issues and
    related issues are each fetched at most once per wrapper.
    """

    def __init__(self, ctx: RollupContext, record: IssueRecord) -> None:
        self.ctx = ctx
        self._record = record
        self._comment_list: CommentList | None = None
        self._comments_dirty = True

        self.subissues: IssueList | None = None
        self.related_issues: IssueList | None = None

    @classmethod
    async def for_issue(
        cls,
        ctx: RollupContext,
        key: IssueKey,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueWrapper:
        record = await ctx.tracker.get_issue(key)
        return await cls(ctx, record).fetch(params)

    @classmethod
    async def for_url(
        cls,
        ctx: RollupContext,
        url: str,
        params: FetchParameters | dict[str, Any] | None = None,
    ) -> IssueWrapper:
        return await cls.for_issue(ctx, cls.key_from_url(url), params)

    @staticmethod
    def key_from_url(url: str) -> IssueKey:
        match = match_issue_url(url)
        if match is None:
            raise InvalidUrlError(url, "Invalid Issue URL")
        if match.issue_number is None:
            raise InvalidUrlError(url, "Issue URL is missing Issue number")
        return IssueKey(organization=match.owner, repository=match.repo, number=match.issue_number)

    # ── Fetching ──────────────────────────────────────────────────

    async def fetch(self, params: FetchParameters | dict[str, Any] | None = None) -> IssueWrapper:
        params = validate_fetch_parameters(params)
        if self._record.comments is None and params.comments > 0:
            if self.was_updated_within(self.ctx.timeframe):
                await self._fetch_comments(params.comments)
        if params.issue_fields and self._record.issue_fields is None:
            self._record.issue_fields = await self.ctx.tracker.list_issue_fields(self.key)
        if params.project_fields and self.project_number:
            await self.fetch_project_fields(self.project_number)
        if params.subissues:
            await self._fetch_subissues(params)
        if params.follow_links:
            await self._follow_links(params)
        return self

    async def _fetch_comments(self, num_comments: int) -> None:
        if self._record.comments is not None:
            return  # Already fetched, usually at the list level
        self.comments = await self.ctx.tracker.list_comments_for_issue(self.key, num_comments)

    async def fetch_project_fields(self, project_number: int) -> None:
        project = self._record.project
        if project is not None:
            if project.number == project_number:
                return
            msg = (
                f"Issue {self.key} is already associated with Project #{project.number}, "
                f"cannot fetch fields for Project #{project_number}."
            )
            raise ConsistencyError(msg)

        fields = await self.ctx.tracker.list_project_fields_for_issue(self.key, project_number)
        self.attach_project(
            ProjectAssociation(organization=self.organization, number=project_number, fields=fields)
        )

    def attach_project(self, project: ProjectAssociation) -> None:
        """Associate project field values; an issue belongs to at most one project."""
        current = self._record.project
        if current is not None and current.number != project.number:
            msg = (
                f"Issue {self.key} is already associated with Project #{current.number}, "
                f"cannot attach fields for Project #{project.number}."
            )
            raise ConsistencyError(msg)
        self._record.project = project

    async def _fetch_subissues(self, params: FetchParameters) -> None:
        if self.subissues is not None:
            return
        from .issue_list import IssueList

        subissues = await IssueList.for_subissues(self.ctx, self.key, replace(params, subissues=True))
        if self.project_number and not subissues.is_empty:
            await subissues.fetch_project_fields(self.project_number)
        self.subissues = subissues

    async def _follow_links(self, params: FetchParameters) -> None:
        if self.related_issues is not None:
            return
        from .issue_list import IssueList

        update = self.comments.latest_update
        if update is None:
            # Unlike sub-issues, no collection is attached without an update to follow
            return

        urls = scrape_issue_urls(update.body)
        if not urls:
            self.related_issues = IssueList.null(self.ctx)
            return
        # Links are only followed one level deep
        self.related_issues = await IssueList.for_urls(
            self.ctx, urls, replace(params, follow_links=False)
        )

    # ── Properties ────────────────────────────────────────────────

    @property
    def key(self) -> IssueKey:
        return IssueKey(organization=self.organization, repository=self.repository, number=self.number)

    @property
    def header(self) -> str:
        return f"[{self.title}]({self.url})"

    @property
    def title(self) -> str:
        return self._record.title.strip()

    @property
    def body(self) -> str:
        return (self._record.body or "").strip()

    @property
    def url(self) -> str:
        return self._record.url

    @property
    def number(self) -> int:
        return self._record.number

    @property
    def is_open(self) -> bool:
        return self._record.is_open

    @property
    def is_subissue(self) -> bool:
        return self._record.is_subissue

    @property
    def created_at(self) -> datetime:
        return self._record.created_at

    @property
    def updated_at(self) -> datetime:
        return self._record.updated_at

    @property
    def type(self) -> str:
        if self.is_subissue:
            return "Subissue"
        return self._record.type

    @property
    def repository(self) -> str:
        return self._record.repository.name

    repo = repository

    @property
    def owner(self) -> str:
        return self._record.repository.owner

    organization = owner
    org = owner

    @property
    def repo_name_with_owner(self) -> str:
        repository = self._record.repository
        return repository.name_with_owner or f"{repository.owner}/{repository.name}"

    @property
    def assignees(self) -> list[str]:
        return [assignee.strip() for assignee in self._record.assignees]

    @property
    def labels(self) -> list[str]:
        return [label.strip() for label in self._record.labels]

    @property
    def parent(self) -> ParentRef | None:
        return self._record.parent

    @property
    def parent_title(self) -> str:
        return self.parent.title if self.parent else ""

    @property
    def parent_url(self) -> str:
        return self.parent.url if self.parent else ""

    # ── Comments ──────────────────────────────────────────────────

    @property
    def has_comments(self) -> bool:
        return self._record.comments is not None

    @property
    def comments(self) -> CommentList:
        if self._comments_dirty or self._comment_list is None:
            self._comment_list = CommentList(
                self._record.comments or [],
                timeframe=self.ctx.timeframe,
                strategies=self.ctx.strategies,
            )
            self._comments_dirty = False
        return self._comment_list

    @comments.setter
    def comments(self, comments: list[CommentRecord]) -> None:
        self._record.comments = list(comments)
        self._comments_dirty = True

    # ── Fields ────────────────────────────────────────────────────

    @property
    def project_number(self) -> int | None:
        return self._record.project.number if self._record.project else None

    @property
    def raw_project_fields(self) -> dict[str, FieldValue]:
        if not self._record.project:
            return {}
        return {slugify_field_name(k): v for k, v in self._record.project.fields.items()}

    @property
    def project_fields(self) -> dict[str, str]:
        if not self._record.project:
            return {}
        return map_fields_to_string(self._record.project.fields)

    @property
    def issue_fields(self) -> dict[str, str]:
        if not self._record.issue_fields:
            return {}
        return map_fields_to_string(self._record.issue_fields)

    def field(self, name: str) -> str:
        """Value of a built-in attribute, issue field, or project field. Empty when unknown."""
        builtin = builtin_field(name)
        if builtin is not None:
            return str(getattr(self, _BUILTIN_ATTRIBUTES[builtin]))

        slug = slugify_field_name(name)
        return self.issue_fields.get(slug) or self.project_fields.get(slug) or ""

    def status_value(self, name: str) -> str:
        """Like field(), but an emoji in the latest update can override the value."""
        sections = self.ctx.config.emoji_sections
        update = self.comments.latest_update if sections is not None else None
        if update is not None:
            emoji = update.emoji_status(sections)
            if emoji:
                field = self.raw_project_fields.get(slugify_field_name(name))
                if field is not None and field.kind == "SingleSelect":
                    for option in field.options:
                        # First option with the emoji wins, a small false positive risk
                        if emoji in option:
                            return option
                return emoji
        return self.field(name)

    def status(self, name: str) -> str:
        return self.status_value(name) or "No Status"

    # ── Timeframes ────────────────────────────────────────────────

    def was_posted_since(self, days: float) -> bool:
        return within_days(self.created_at, days)

    def was_updated_since(self, days: float) -> bool:
        return within_days(self.updated_at, days)

    @property
    def was_posted_today(self) -> bool:
        return self.was_posted_since(1)

    @property
    def was_posted_this_week(self) -> bool:
        return self.was_posted_since(7)

    @property
    def was_posted_this_month(self) -> bool:
        return self.was_posted_since(31)

    @property
    def was_posted_this_year(self) -> bool:
        return self.was_posted_since(365)

    @property
    def was_updated_today(self) -> bool:
        return self.was_updated_since(1)

    @property
    def was_updated_this_week(self) -> bool:
        return self.was_updated_since(7)

    @property
    def was_updated_this_month(self) -> bool:
        return self.was_updated_since(31)

    @property
    def was_updated_this_year(self) -> bool:
        return self.was_updated_since(365)

    def was_updated_within(self, timeframe: str) -> bool:
        return within_timeframe(self.updated_at, timeframe)

    # ── Slack ─────────────────────────────────────────────────────

    async def dm_assignees(self, message: str) -> None:
        slack = self.ctx.slack
        if slack is None:
            raise ConfigurationError("Slack is not configured. Set SLACK_TOKEN.")

        text = f"Regarding the Issue {slack_link(self.url, self.title)}:\n{message}\n_{SLACK_FOOTER}_"
        if not self.assignees:
            await slack.send_dm(None, text)
            return
        for assignee in self.assignees:
            logger.info("Messaging @%s about Issue %s", assignee, self.header)
        await asyncio.gather(*(slack.send_dm(assignee, text) for assignee in self.assignees))

    # ── Rendering ─────────────────────────────────────────────────

    def remember(self, options: dict[str, Any] | None = None, **kwargs: Any) -> RenderedFragment | None:
        """Render and store the result in the context memory."""
        rendered = render_issue(self, validate_render_options(options, **kwargs))
        if rendered is not None:
            self.ctx.memory.remember(rendered.markdown, rendered.sources)
        return rendered

    def render(self, options: dict[str, Any] | None = None, **kwargs: Any) -> str:
        rendered = self.remember(options, **kwargs)
        return rendered.markdown if rendered else ""

    def __repr__(self) -> str:
        return f"IssueWrapper({self.key})"
