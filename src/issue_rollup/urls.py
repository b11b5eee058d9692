"""GitHub URL parsing."""

from __future__ import annotations

import re
from typing import NamedTuple
from urllib.parse import parse_qs, unquote, urlparse

from .exceptions import InvalidUrlError

# Matches:  /<owner>/<repo>[/issues[/<number>]]
_ISSUE_PATH_RE = re.compile(r"^/([^/]+)/([^/]+)(?:/issues(?:/(\d+))?)?/?$")
# Matches:  /orgs/<org>/projects/<number>[/views/<number>]
_PROJECT_VIEW_PATH_RE = re.compile(r"orgs/([^/]+)/projects/(\d+)(?:/views/(\d+))?")
# Stops at whitespace, quotes, and markdown link closers
_SCRAPE_RE = re.compile(r"github\.com/[^\s)'\"<>\]]+")


class IssueMatch(NamedTuple):
    owner: str
    repo: str
    issue_number: int | None


class ProjectViewMatch(NamedTuple):
    organization: str
    project_number: int
    project_view_number: int | None
    custom_query: str | None


def _validate_url(url: str):
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    parts = urlparse(url)
    if parts.hostname != "github.com":
        raise InvalidUrlError(url, f"Unsupported hostname {parts.hostname}")
    return parts


def match_issue_url(url: str) -> IssueMatch | None:
    """Extract (owner, repo, issue_number) from a repository or issue URL.

    Returns None when the URL points elsewhere on github.com.
    """
    m = _ISSUE_PATH_RE.match(_validate_url(url).path)
    if not m:
        return None
    owner, repo, number = m.groups()
    return IssueMatch(unquote(owner), unquote(repo), int(number) if number else None)


def match_project_view_url(url: str) -> ProjectViewMatch | None:
    parts = _validate_url(url)
    m = _PROJECT_VIEW_PATH_RE.search(parts.path)
    if not m:
        return None
    organization, project_number, view_number = m.groups()
    query = parse_qs(parts.query).get("filterQuery")
    return ProjectViewMatch(
        organization,
        int(project_number),
        int(view_number) if view_number else None,
        query[0] if query else None,
    )


def scrape_issue_urls(blob: str) -> list[str]:
    """Find every distinct issue URL in a blob of text, in order of appearance."""
    urls: dict[str, None] = {}
    for candidate in _SCRAPE_RE.findall(blob):
        candidate = candidate.rstrip(".,;:")
        match = match_issue_url(candidate)
        if match and match.issue_number is not None:
            urls[f"https://{candidate}"] = None
    return list(urls)
