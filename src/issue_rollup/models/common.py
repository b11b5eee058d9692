"""Common tracker models shared across records."""

from __future__ import annotations

from .base import TrackerModel


class IssueKey(TrackerModel):
    """Identity of an issue: where it lives and its number."""

    model_config = {"frozen": True}

    organization: str
    repository: str
    number: int

    def __str__(self) -> str:
        return f"{self.organization}/{self.repository}#{self.number}"


class Repository(TrackerModel):
    name: str
    owner: str
    name_with_owner: str = ""


class ParentRef(TrackerModel):
    title: str = ""
    url: str = ""
    number: int


class FieldValue(TrackerModel):
    """A custom field value; ``options`` lists the choices of single-select fields."""

    kind: str = "Text"
    value: str | float | list[str] | None = None
    options: list[str] = []
