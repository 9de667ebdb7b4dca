"""Exception hierarchy shared by the client services."""

from __future__ import annotations


class CatalogAdminError(RuntimeError):
    """Base class for failures reported by the admin client."""


class SessionRequiredError(CatalogAdminError):
    """Raised when an operation needs a signed-in session and none exists."""


class ApiError(CatalogAdminError):
    """Raised when a read endpoint answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SignInError(CatalogAdminError):
    """Raised when the backend refuses the supplied credentials."""


class MutationError(CatalogAdminError):
    """Raised when a create, update, upload or delete call is rejected."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UploadError(MutationError):
    """Raised when a step of the resource upload workflow fails."""


class SelectionError(CatalogAdminError, ValueError):
    """Raised when a selection does not reference a loaded entry."""


__all__ = [
    "ApiError",
    "CatalogAdminError",
    "MutationError",
    "SelectionError",
    "SessionRequiredError",
    "SignInError",
    "UploadError",
]
