"""Custom exceptions for snapshot fetching."""

from __future__ import annotations


class SnapshotError(Exception):
    """Base exception for snapshot errors.

    Every subclass carries a stable ``code`` that the API layer reports to
    callers, and a ``retryable`` flag telling them whether trying again
    later can succeed without operator action.
    """

    code = "UPSTREAM_FAILURE"
    retryable = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


class MissingCredentialError(SnapshotError):
    """No GitHub token is configured."""

    code = "MISSING_GITHUB_TOKEN"


class InvalidCredentialError(SnapshotError):
    """GitHub rejected the configured token."""

    code = "INVALID_GITHUB_TOKEN"


class InvalidRepositoryError(SnapshotError):
    """Repository identifier is missing or not in "owner/name" form."""

    code = "INVALID_REPOSITORY"


class RepositoryNotFoundError(SnapshotError):
    """GitHub returned no repository for the given owner/name."""

    code = "REPOSITORY_NOT_FOUND"


class UpstreamRateLimitedError(SnapshotError):
    """GitHub is rate limiting this token."""

    code = "UPSTREAM_RATE_LIMITED"
    retryable = True

    def __init__(self, message: str | None = None, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(SnapshotError):
    """Any other failure talking to GitHub or reading its response."""

    code = "UPSTREAM_FAILURE"
