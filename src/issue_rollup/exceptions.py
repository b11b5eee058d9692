"""Issue rollup exceptions."""

from __future__ import annotations


class RollupError(Exception):
    """Base exception for issue rollup operations."""


class ConfigurationError(RollupError, ValueError):
    """Raised for invalid options, enum values, or conflicting settings."""


class ConsistencyError(RollupError):
    """Raised when fetched data contradicts the state of an issue or collection."""


class InvalidUrlError(RollupError, ValueError):
    """Raised when a URL cannot be resolved to a GitHub issue or project."""

    def __init__(self, url: str, reason: str = "Invalid GitHub URL") -> None:
        self.url = url
        super().__init__(f'{reason}: "{url}"')


class GitHubApiError(RollupError):
    """Raised when the GitHub API returns a non-success response."""

    def __init__(self, status_code: int, status_text: str, body: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        super().__init__(f"GitHub API Error {status_code} {status_text}: {body}")


class GitHubAuthError(GitHubApiError):
    """Raised on 401/403 authentication failures."""

    def __init__(self, status_code: int, body: str = "") -> None:
        status_text = "Unauthorized" if status_code == 401 else "Forbidden"
        super().__init__(status_code, status_text, body)


class GitHubNotFoundError(GitHubApiError):
    """Raised on 404 responses."""

    def __init__(self, body: str = "") -> None:
        super().__init__(404, "Not Found", body)
