"""Field resolution: built-in issue attributes, then issue fields, then project fields."""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum

from .models import FieldValue
from .text import fuzzy


class BuiltinField(Enum):
    TITLE = "title"
    URL = "url"
    NUMBER = "number"
    BODY = "body"
    TYPE = "type"
    REPOSITORY = "repository"
    OWNER = "owner"
    NAME_WITH_OWNER = "name_with_owner"
    PARENT_TITLE = "parent_title"
    PARENT_URL = "parent_url"


_ALIASES: dict[str, BuiltinField] = {
    fuzzy(alias): builtin
    for builtin, aliases in {
        BuiltinField.TITLE: ("title",),
        BuiltinField.URL: ("url",),
        BuiltinField.NUMBER: ("number",),
        BuiltinField.BODY: ("body",),
        BuiltinField.TYPE: ("type",),
        BuiltinField.REPOSITORY: ("repo", "repository"),
        BuiltinField.OWNER: ("org", "organization", "owner"),
        BuiltinField.NAME_WITH_OWNER: ("full_name", "name_with_owner", "repo_name_with_owner"),
        BuiltinField.PARENT_TITLE: ("parent", "parent_issue", "parent_title"),
        BuiltinField.PARENT_URL: ("parent_url",),
    }.items()
    for alias in aliases
}


def builtin_field(name: str) -> BuiltinField | None:
    """Match a field name against the built-in aliases, ignoring case, spaces and underscores."""
    return _ALIASES.get(fuzzy(name))


def slugify_field_name(name: str) -> str:
    """Key used for custom fields: lowercase, words joined by dashes ("Target Date" -> "target-date")."""
    slug = re.sub(r"[\s_]+", "-", name.strip().lower())
    return re.sub(r"[^\w-]", "", slug)


def field_value_to_string(field: FieldValue) -> str:
    value = field.value
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v).strip() for v in value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return str(value).strip()


def map_fields_to_string(fields: Mapping[str, FieldValue]) -> dict[str, str]:
    return {slugify_field_name(name): field_value_to_string(f) for name, f in fields.items()}
