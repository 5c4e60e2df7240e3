"""
Domain exceptions raised by the services and rendered by the API layer
"""

from fastapi import status


class MarketplaceError(Exception):
    """Base class for marketplace domain errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "server_error"

    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message)
        self.message = message


class NotFoundError(MarketplaceError):
    """Raised when a referenced deal, listing or account does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ForbiddenError(MarketplaceError):
    """Raised when the caller lacks the role the operation requires."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidStateError(MarketplaceError):
    """Raised when an operation is attempted from a status that does not permit it."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class InvalidOperationError(MarketplaceError):
    """Raised when a business rule forbids the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_operation"


class UnauthenticatedError(MarketplaceError):
    """Raised when no valid bearer credential is presented."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class StorageError(MarketplaceError):
    """Raised when the database keeps failing after all retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_unavailable"
