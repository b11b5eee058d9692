from .base import TrackerModel
from .comments import CommentRecord
from .common import FieldValue, IssueKey, ParentRef, Repository
from .issues import IssueBatch, IssueRecord
from .projects import ProjectAssociation, ProjectItem, ProjectViewRecord

__all__ = [
    "CommentRecord",
    "FieldValue",
    "IssueBatch",
    "IssueKey",
    "IssueRecord",
    "ParentRef",
    "ProjectAssociation",
    "ProjectItem",
    "ProjectViewRecord",
    "Repository",
    "TrackerModel",
]
