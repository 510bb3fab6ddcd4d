"""
Centralized error definitions and user-friendly message mapping.
Services raise these; the app-level handler renders them as JSON responses.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base class for registry errors with user message and status code."""
    status_code: int = 500
    user_message: str = "Something went wrong. Please try again."

    def __init__(self, detail: str | None = None):
        self.detail = detail
        super().__init__(detail or self.user_message)


class NotAuthorizedError(RegistryError):
    status_code = 403
    user_message = "You are not allowed to perform this action"

    def __init__(self, detail: str | None = None):
        super().__init__(detail)
        if detail:
            self.user_message = detail


class ValidationFailedError(RegistryError):
    status_code = 400
    user_message = "Invalid request"

    def __init__(self, detail: str | None = None):
        super().__init__(detail)
        if detail:
            self.user_message = detail


class StoreUnavailableError(RegistryError):
    status_code = 503
    user_message = "Could not connect to the favorites store. Please try again."


class TransactionFailedError(RegistryError):
    status_code = 503
    user_message = "The change could not be saved. Please retry."

    def __init__(self, detail: str | None = None, failed_step: str | None = None):
        self.failed_step = failed_step
        super().__init__(detail)


class IndexRemovalFailedError(RegistryError):
    """Collected per package by the spam workflow; never rendered directly."""
    status_code = 502
    user_message = "Package could not be removed from the provider index"

    def __init__(self, package_name: str, package_id: int | None = None, detail: str | None = None):
        self.package_name = package_name
        self.package_id = package_id
        super().__init__(detail or f"{package_name}: {self.user_message}")


class UserNotFoundError(RegistryError):
    status_code = 404
    user_message = "User not found"


class PackageNotFoundError(RegistryError):
    status_code = 404
    user_message = "Package not found"

    def __init__(self, package_name: str | None = None):
        if package_name:
            self.user_message = f'The given package "{package_name}" was not found.'
        super().__init__(package_name)


class OutOfRangePageError(RegistryError):
    status_code = 404
    user_message = "Page not found"

    def __init__(self, page: int, total_pages: int | None = None):
        self.page = page
        self.total_pages = total_pages
        super().__init__(f"page={page}, total_pages={total_pages}")


class GitHubNotConnectedError(RegistryError):
    status_code = 400
    user_message = "You must connect your user account to github to sync packages."


class GitHubScopeMissingError(RegistryError):
    status_code = 400
    user_message = (
        "Please log out and log in with GitHub again to make sure "
        "the correct GitHub permissions are granted."
    )


class SyncSchedulingError(RegistryError):
    status_code = 503
    user_message = "The sync could not be queued. Please try again later."


async def registry_exception_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """FastAPI exception handler for RegistryError subclasses."""
    logger.warning(
        f"Registry error handler: {type(exc).__name__}, "
        f"path={request.url.path}, detail={exc.detail}, user_message={exc.user_message}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.user_message},
    )


__all__ = [
    "RegistryError",
    "NotAuthorizedError",
    "ValidationFailedError",
    "StoreUnavailableError",
    "TransactionFailedError",
    "IndexRemovalFailedError",
    "UserNotFoundError",
    "PackageNotFoundError",
    "OutOfRangePageError",
    "GitHubNotConnectedError",
    "GitHubScopeMissingError",
    "SyncSchedulingError",
    "registry_exception_handler",
]
