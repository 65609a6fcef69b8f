"""
Custom exception classes for the Checkbook authorization core.

This module defines a hierarchy of custom exceptions that map to HTTP status codes
and provide consistent error responses to whichever layer calls the services.

Exception hierarchy:
    AppException (base)
    ├── AuthorizationError (403)
    │   └── InsufficientPermissionsError
    ├── ResourceError
    │   ├── NotFoundError (404)
    │   ├── AlreadyExistsError (409)
    │   │   └── DuplicatePendingRequestError
    │   └── ConflictError (409)
    │       └── RequestNotPendingError
    └── ValidationError (422)
        ├── InvalidInputError
        ├── AccountNotSharedError
        ├── OwnerSelfRequestError
        ├── PermissionAlreadyHeldError
        ├── SelfGrantError
        └── RequestAccountMismatchError
"""

from typing import Any


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    Attributes:
        status_code: HTTP status code for the error
        error_code: Machine-readable error code
        message: Human-readable error message
        details: Optional additional error details
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error information
        """
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Authorization Errors (403 Forbidden)
# =============================================================================


class AuthorizationError(AppException):
    """Base class for authorization errors."""

    def __init__(
        self,
        message: str = "Access forbidden",
        error_code: str = "AUTHORIZATION_FAILED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code=error_code,
            details=details,
        )


class InsufficientPermissionsError(AuthorizationError):
    """Raised when user lacks the required permission level or ownership."""

    def __init__(
        self,
        message: str = "Insufficient permissions to perform this action",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="INSUFFICIENT_PERMISSIONS",
            details=details,
        )


# =============================================================================
# Resource Errors
# =============================================================================


class ResourceError(AppException):
    """Base class for resource-related errors."""

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class NotFoundError(ResourceError):
    """Raised when a referenced account, request, user or grant does not exist."""

    def __init__(
        self,
        resource: str = "Resource",
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if message is None:
            message = f"{resource} not found"
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class AlreadyExistsError(ResourceError):
    """Raised when attempting to create a resource that already exists."""

    def __init__(
        self,
        resource: str = "Resource",
        message: str | None = None,
        details: dict[str, Any] | None = None,
        error_code: str = "ALREADY_EXISTS",
    ) -> None:
        if message is None:
            message = f"{resource} already exists"
        super().__init__(
            message=message,
            status_code=409,
            error_code=error_code,
            details=details,
        )


class DuplicatePendingRequestError(AlreadyExistsError):
    """Raised when the requester already has a pending request for the account."""

    def __init__(
        self,
        message: str = "You already have a pending permission request for this account",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details=details,
            error_code="DUPLICATE_PENDING_REQUEST",
        )


class ConflictError(ResourceError):
    """Raised when there's a conflict with the current state of the resource."""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: dict[str, Any] | None = None,
        error_code: str = "CONFLICT",
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code=error_code,
            details=details,
        )


class RequestNotPendingError(ConflictError):
    """Raised when approving, denying or cancelling a request that is already closed."""

    def __init__(
        self,
        message: str = "Permission request is not pending",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details=details,
            error_code="REQUEST_NOT_PENDING",
        )


# =============================================================================
# Validation Errors (422 Unprocessable Entity)
# =============================================================================


class ValidationError(AppException):
    """Base class for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=422,
            error_code=error_code,
            details=details,
        )


class InvalidInputError(ValidationError):
    """Raised when input data is invalid."""

    def __init__(
        self,
        field: str | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if message is None and field:
            message = f"Invalid input for field: {field}"
        elif message is None:
            message = "Invalid input"

        super().__init__(
            message=message,
            error_code="INVALID_INPUT",
            details=details,
        )


class AccountNotSharedError(ValidationError):
    """Raised when a permission request targets a non-shared account."""

    def __init__(
        self,
        message: str = "Cannot request permissions for non-shared accounts",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="ACCOUNT_NOT_SHARED",
            details=details,
        )


class OwnerSelfRequestError(ValidationError):
    """Raised when an account owner files a permission request on their own account."""

    def __init__(
        self,
        message: str = "Account owners cannot request permissions for their own accounts",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="OWNER_SELF_REQUEST",
            details=details,
        )


class PermissionAlreadyHeldError(ValidationError):
    """Raised when the requested permission is already covered by the current one."""

    def __init__(
        self,
        message: str = "You already have this permission level or higher",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="PERMISSION_ALREADY_HELD",
            details=details,
        )


class SelfGrantError(ValidationError):
    """Raised when an owner tries to grant a permission to themselves."""

    def __init__(
        self,
        message: str = "Cannot grant permission to yourself",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="SELF_GRANT",
            details=details,
        )


class RequestAccountMismatchError(ValidationError):
    """Raised when a permission request is reviewed through the wrong account."""

    def __init__(
        self,
        message: str = "Permission request does not belong to this account",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="REQUEST_ACCOUNT_MISMATCH",
            details=details,
        )
