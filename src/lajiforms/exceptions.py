"""Package exceptions.

`UnprocessableError` and `StoreError` are the two errors an API layer answers
with an HTTP status of their own: 422 for a form that does not fit the
catalog, the store's status for storage failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus


class PackageError(Exception):
    """Root exception for the package."""

    @property
    def http_status(self) -> int:
        """HTTP status an API layer answers this error with."""
        return HTTPStatus.INTERNAL_SERVER_ERROR


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class AsyncExecutionError(PackageError):
    """Raised when a coroutine run on the worker thread fails unexpectedly."""

    result: BaseException
    message: str = "Async operation failed"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.result}"


@dataclass(frozen=True)
class UnprocessableError(PackageError):
    """Raised when a form is structurally invalid against the metadata catalog."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message

    @property
    def http_status(self) -> int:
        return HTTPStatus.UNPROCESSABLE_ENTITY


@dataclass(frozen=True)
class StoreError(PackageError):
    """Raised when the form storage reports an HTTP error."""

    status: int
    store_error: str | None = None
    message: str = "Store error"

    def __str__(self) -> str:
        """Return error message payload."""
        if self.store_error:
            return f"{self.message} ({self.status}): {self.store_error}"
        return f"{self.message} ({self.status})"

    @property
    def http_status(self) -> int:
        return self.status


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when runtime dependencies of a CLI command are missing."""

    missing_package: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing runtime dependencies for '{self.message}': {', '.join(self.missing_package)}"
