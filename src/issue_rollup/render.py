"""Render issues, their updates, and collections of issues to markdown.

Every fragment carries the sources it was built from: the URL of each issue and
update that made it into the markdown, in render order. The memory uses them as
cache key material, so rendering the same input twice must give the same list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .options import RenderOptions
from .text import strip_html

if TYPE_CHECKING:
    from .comments import CommentWrapper
    from .issue import IssueWrapper
    from .issue_list import IssueList

EMPTY_ISSUE = "This Issue has no updates, or body content to render."
EMPTY_LIST = "No Issues to render."


@dataclass
class RenderedFragment:
    markdown: str
    sources: list[str] = field(default_factory=list)


def _heading(level: int, text: str) -> str:
    return f"{'#' * level} {text}\n\n"


def render_comment(
    comment: CommentWrapper, options: RenderOptions, header_level: int = 4
) -> RenderedFragment | None:
    body = strip_html(comment.body).strip()
    if not body:
        return None

    markdown = ""
    if options.header:
        markdown += _heading(header_level, comment.header)
    if options.author:
        markdown += f"Posted by @{comment.author} on {comment.created_at.isoformat()}\n\n"
    markdown += body
    return RenderedFragment(markdown, [comment.url])


def _render_nested(
    issues: IssueList, options: RenderOptions, header_level: int
) -> RenderedFragment:
    markdown = ""
    sources: list[str] = []
    for issue in issues:
        rendered = render_issue(issue, options, header_level)
        if rendered is not None:
            markdown += f"{rendered.markdown}\n\n"
            sources.extend(rendered.sources)
    markdown += "---\n\n"
    return RenderedFragment(markdown, sources)


def render_issue(
    issue: IssueWrapper, options: RenderOptions, header_level: int = 3
) -> RenderedFragment | None:
    """Render an issue, or None when there is nothing to show and empty output is skipped.

    Options are not modified: sub-issues and related issues left unset (None) render
    whenever this particular issue has them attached.
    """
    render_subissues = (
        options.subissues if options.subissues is not None else issue.subissues is not None
    )
    render_related = (
        options.related_issues
        if options.related_issues is not None
        else issue.related_issues is not None
    )

    markdown = ""
    sources = [issue.url]

    if options.header:
        markdown += _heading(header_level, issue.header)

    has_updates = options.updates > 0 and issue.comments.has_update
    has_body = options.body and bool(issue.body)
    has_subissue_updates = (
        render_subissues and issue.subissues is not None and issue.subissues.has_updates
    )
    if not (has_updates or has_body or has_subissue_updates):
        if options.skip_if_empty or not options.header:
            return None
        return RenderedFragment(f"{markdown}{EMPTY_ISSUE}\n\n", sources)

    if options.created_at:
        markdown += f"Issue Opened: {issue.created_at.isoformat()}\n"
    if options.updated_at:
        markdown += f"Issue Edited: {issue.updated_at.isoformat()}\n"
    if options.created_at or options.updated_at:
        markdown += "\n"

    if options.fields:
        for name in options.fields:
            value = issue.field(name)
            if value:
                markdown += f"**{name}:** {value}\n"
        markdown += "\n"

    if options.body:
        markdown += f"{issue.body}\n\n"

    if options.updates:
        for update in issue.comments.latest_updates(options.updates):
            rendered = render_comment(update, options, header_level + 1)
            if rendered is not None:
                markdown += f"{rendered.markdown}\n\n"
                sources.extend(rendered.sources)

    if render_subissues and issue.subissues is not None:
        nested = _render_nested(issue.subissues, options, header_level + 1)
        markdown += nested.markdown
        sources.extend(nested.sources)

    if render_related and issue.related_issues is not None:
        nested = _render_nested(issue.related_issues, options, header_level + 1)
        markdown += nested.markdown
        sources.extend(nested.sources)

    return RenderedFragment(markdown, sources)


def render_issue_list(
    issues: IssueList, options: RenderOptions, header_level: int = 2
) -> RenderedFragment | None:
    parts: list[RenderedFragment] = []
    for issue in issues:
        rendered = render_issue(issue, options, header_level + 1)
        if rendered is not None:
            parts.append(rendered)

    if not parts and (options.skip_if_empty or not options.header):
        return None

    markdown = ""
    if options.header:
        title = issues.header
        if issues.is_grouped:
            title += f" - {issues.group_key}"
        markdown += _heading(header_level, title)
    if not parts:
        markdown += f"{EMPTY_LIST}\n\n"

    sources: list[str] = []
    for part in parts:
        markdown += f"{part.markdown}\n\n"
        sources.extend(part.sources)
    return RenderedFragment(markdown, sources)
