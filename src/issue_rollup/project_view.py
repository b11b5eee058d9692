"""Project views: the filter query syntax of GitHub Projects, applied to issues."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import ProjectViewRecord

if TYPE_CHECKING:
    from .issue import IssueWrapper

# Matches:  [-]key:value   or   free text, values may be "quoted"
_TERM_RE = re.compile(r'(-?)([\w-]+):((?:"[^"]*"|[^\s"])+)|("[^"]*"|\S+)')

BUILTIN_KEYS = {
    "is",
    "label",
    "labels",
    "assignee",
    "assignees",
    "repo",
    "repository",
    "type",
    "no",
    "has",
}
UNSUPPORTED_KEYS = {
    "created",
    "updated",
    "closed",
    "last-updated",
    "milestone",
    "reason",
    "parent-issue",
    "sub-issues-progress",
}


@dataclass
class FilterTerm:
    key: str  # "" for free text
    values: list[str]
    negated: bool = False

    @property
    def is_custom(self) -> bool:
        return bool(self.key) and self.key not in BUILTIN_KEYS


def _split_values(raw: str) -> list[str]:
    values = re.findall(r'"([^"]*)"|([^,]+)', raw)
    return [(quoted or plain).strip() for quoted, plain in values if (quoted or plain).strip()]


def _is_unsupported(key: str, values: list[str]) -> bool:
    if key in UNSUPPORTED_KEYS:
        return True
    return any(v.startswith((">", "<")) or ".." in v or v.startswith("@") for v in values)


def parse_filter_query(query: str) -> tuple[list[FilterTerm], list[str]]:
    """Split a query into supported terms and the names of unsupported filters."""
    terms: list[FilterTerm] = []
    unsupported: list[str] = []
    for negated, key, raw, text in _TERM_RE.findall(query):
        if text:
            terms.append(FilterTerm("", [text.strip('"')]))
            continue
        key = key.lower()
        values = _split_values(raw)
        if _is_unsupported(key, values):
            if key not in unsupported:
                unsupported.append(key)
            continue
        terms.append(FilterTerm(key, values, negated=bool(negated)))
    return terms, unsupported


def _folded(values: list[str]) -> set[str]:
    return {v.casefold() for v in values}


def _list_field(issue: IssueWrapper, name: str) -> list[str] | None:
    if name in ("label", "labels"):
        return issue.labels
    if name in ("assignee", "assignees"):
        return issue.assignees
    return None


def _has_value(issue: IssueWrapper, name: str) -> bool:
    values = _list_field(issue, name)
    if values is not None:
        return bool(values)
    return bool(issue.field(name))


def _matches(issue: IssueWrapper, term: FilterTerm) -> bool:
    wanted = _folded(term.values)
    if not term.key:
        haystack = f"{issue.title}\n{issue.body}".casefold()
        return all(word in haystack for word in wanted)
    if term.key == "is":
        state = {"open"} if issue.is_open else {"closed"}
        return bool(wanted & (state | {"issue"}))
    if term.key in ("no", "has"):
        present = all(_has_value(issue, name) for name in wanted)
        absent = not any(_has_value(issue, name) for name in wanted)
        return present if term.key == "has" else absent
    values = _list_field(issue, term.key)
    if values is not None:
        return bool(wanted & _folded(values))
    if term.key in ("repo", "repository"):
        return bool(wanted & {issue.repository.casefold(), issue.repo_name_with_owner.casefold()})
    if term.key == "type":
        return issue.type.casefold() in wanted
    return issue.field(term.key).casefold() in wanted


class ProjectView:
    """A saved (or ad-hoc) filter over the items of one project."""

    def __init__(
        self,
        project_number: int,
        filter_query: str = "",
        number: int | None = None,
        name: str = "",
    ) -> None:
        self.project_number = project_number
        self.filter_query = filter_query
        self.number = number
        self.name = name
        self.terms, self.unsupported_fields = parse_filter_query(filter_query)

    @classmethod
    def from_record(cls, project_number: int, record: ProjectViewRecord) -> ProjectView:
        return cls(
            project_number=project_number,
            filter_query=record.filter_query,
            number=record.number,
            name=record.name,
        )

    @property
    def uses_custom_fields(self) -> bool:
        for term in self.terms:
            if term.is_custom:
                return True
            if term.key in ("no", "has") and any(v.lower() not in BUILTIN_KEYS for v in term.values):
                return True
        return False

    def filter_issue(self, issue: IssueWrapper) -> bool:
        return all(_matches(issue, term) != term.negated for term in self.terms)
