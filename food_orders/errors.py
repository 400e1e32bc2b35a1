"""
Error taxonomy for the order lifecycle and refund engines.

Business-rule violations derive from OrderWorkflowError. They are raised
before any store is written, carry the HTTP status the API answers with, and
are never retried. Infrastructure failures are kept apart in
StoreUnavailableError so that the execution layer can retry them.

Errors cross the Temporal boundary by class name (the ApplicationError
``type``), so ``error_from_name`` rebuilds them on the other side.
"""

from typing import Dict, Optional, Type


class OrderWorkflowError(Exception):
    """Base class for business-rule violations."""

    http_status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(OrderWorkflowError):
    """Raised when an order or its payment record does not exist"""

    http_status = 404


class InvalidStateError(OrderWorkflowError):
    """Raised when a transition is not permitted from the current state"""

    http_status = 400


class ConflictError(OrderWorkflowError):
    """Raised for duplicate refund requests and lost update races"""

    http_status = 409


class ForbiddenError(OrderWorkflowError):
    """Raised when the actor lacks the authority for an operation"""

    http_status = 403


class ConcurrentUpdateError(OrderWorkflowError):
    """Raised by stores when a conditional write finds a newer version.

    The engines catch this, reload the order and report the precise
    business error, so it only reaches callers in unusual interleavings.
    """

    http_status = 409

    def __init__(
        self,
        message: str,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version


class StoreUnavailableError(Exception):
    """Raised when a backing store cannot be reached. Safe to retry."""

    http_status = 503


BUSINESS_ERRORS: Dict[str, Type[OrderWorkflowError]] = {
    cls.__name__: cls
    for cls in (
        NotFoundError,
        InvalidStateError,
        ConflictError,
        ForbiddenError,
        ConcurrentUpdateError,
    )
}


def error_from_name(name: Optional[str], message: str) -> Optional[Exception]:
    """Rebuild a business error from its class name, or None if unknown."""
    if name is None:
        return None
    if name == StoreUnavailableError.__name__:
        return StoreUnavailableError(message)
    error_class = BUSINESS_ERRORS.get(name)
    if error_class is None:
        return None
    return error_class(message)
