"""Validation of fetch parameters and render options supplied by callers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .config import is_truthy
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .issue import IssueWrapper

_FETCH_KEYS = {
    "comments": "comments",
    "projectFields": "project_fields",
    "project_fields": "project_fields",
    "issueFields": "issue_fields",
    "issue_fields": "issue_fields",
    "subissues": "subissues",
    "followLinks": "follow_links",
    "follow_links": "follow_links",
    "filter": "filter",
}

_RENDER_KEYS = {
    "header": "header",
    "body": "body",
    "updates": "updates",
    "author": "author",
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "field": "field",
    "fields": "fields",
    "subissues": "subissues",
    "relatedIssues": "related_issues",
    "related_issues": "related_issues",
    "skipIfEmpty": "skip_if_empty",
    "skip_if_empty": "skip_if_empty",
}


def _accept_all(issue: IssueWrapper) -> bool:
    return True


@dataclass(frozen=True)
class FetchParameters:
    comments: int = 20
    project_fields: bool = False
    issue_fields: bool = False
    subissues: bool = False
    follow_links: bool = False
    filter: Callable[[IssueWrapper], bool] = _accept_all


@dataclass(frozen=True)
class RenderOptions:
    header: bool = True
    body: bool = False
    updates: int = 1
    author: bool = True
    created_at: bool = False
    updated_at: bool = False
    fields: tuple[str, ...] = field(default_factory=tuple)
    # None renders nested collections when the issue has them
    subissues: bool | None = None
    related_issues: bool | None = None
    skip_if_empty: bool = True


def _normalize(raw: Mapping[str, Any], known: dict[str, str], kind: str) -> dict[str, Any]:
    invalid = [key for key in raw if key not in known]
    if invalid:
        plural = "s" if len(invalid) > 1 else ""
        raise ConfigurationError(f"Invalid {kind}{plural}: {', '.join(invalid)}")
    return {known[key]: value for key, value in raw.items() if value is not None}


def _non_negative_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        if isinstance(value, str) and value.strip().lower() in ("true", "false", "yes", "no"):
            return int(is_truthy(value))
        raise ConfigurationError(f'Invalid value for "{name}": {value!r}') from None
    if number < 0:
        raise ConfigurationError(f'Invalid value for "{name}": {value!r}. Use a positive number.')
    return number


def validate_fetch_parameters(
    params: FetchParameters | Mapping[str, Any] | None = None, **kwargs: Any
) -> FetchParameters:
    """Build FetchParameters from a mapping and/or keyword arguments, rejecting unknown keys."""
    if isinstance(params, FetchParameters) and not kwargs:
        return params
    raw = {**(params or {}), **kwargs} if not isinstance(params, FetchParameters) else kwargs
    values = _normalize(raw, _FETCH_KEYS, "FetchParameter")

    parsed: dict[str, Any] = {}
    if "comments" in values:
        parsed["comments"] = _non_negative_int("comments", values["comments"])
    for flag in ("project_fields", "issue_fields", "subissues", "follow_links"):
        if flag in values:
            parsed[flag] = is_truthy(values[flag])
    if "filter" in values:
        if not callable(values["filter"]):
            raise ConfigurationError('FetchParameter "filter" must be callable')
        parsed["filter"] = values["filter"]

    if isinstance(params, FetchParameters):
        return replace(params, **parsed)
    return FetchParameters(**parsed)


def validate_render_options(
    options: RenderOptions | Mapping[str, Any] | None = None, **kwargs: Any
) -> RenderOptions:
    """Build RenderOptions from a mapping and/or keyword arguments, rejecting unknown keys."""
    if isinstance(options, RenderOptions) and not kwargs:
        return options
    if isinstance(options, RenderOptions):
        raise ConfigurationError("Pass either RenderOptions or keyword options, not both")
    values = _normalize({**(options or {}), **kwargs}, _RENDER_KEYS, "RenderOption")

    if "field" in values and "fields" in values:
        msg = 'Cannot use both "field" and "fields" options. Use "fields" for multiple fields.'
        raise ConfigurationError(msg)

    parsed: dict[str, Any] = {}
    for flag in ("header", "body", "author", "created_at", "updated_at", "skip_if_empty"):
        if flag in values:
            parsed[flag] = is_truthy(values[flag])
    for auto in ("subissues", "related_issues"):
        if auto in values:
            parsed[auto] = is_truthy(values[auto])
    if "updates" in values:
        parsed["updates"] = _non_negative_int("updates", values["updates"])

    if "field" in values:
        parsed["fields"] = (str(values["field"]),)
    elif "fields" in values:
        fields = values["fields"]
        if isinstance(fields, (list, tuple)):
            parsed["fields"] = tuple(str(f) for f in fields)
        else:
            parsed["fields"] = (str(fields),)

    return RenderOptions(**parsed)
