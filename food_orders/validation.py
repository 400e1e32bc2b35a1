"""
Runtime validation utilities for ensuring architectural contracts and data
integrity.

This module provides functions to validate:

- Repository implementations against their defined Protocols using @runtime_checkable.
- Dictionary data read back from storage against Pydantic domain models.

The goal is to catch configuration and data errors early at critical
application boundaries: use cases validate their collaborators at
construction time, and stores validate what they read before handing it
to the engines.
"""

import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

P = TypeVar("P")
M = TypeVar("M", bound=BaseModel)


class RepositoryValidationError(Exception):
    """Raised when repository contract validation fails"""

    pass


class DomainValidationError(Exception):
    """Raised when domain model validation fails"""

    pass


def validate_repository_protocol(
    repository: object, protocol: Type[P]
) -> None:
    """
    Validate that a repository implementation satisfies a protocol contract.

    Args:
        repository: The repository implementation to validate
        protocol: The protocol class to validate against

    Raises:
        RepositoryValidationError: If validation fails

    Example:
        >>> from food_orders.repos.memory import MemoryOrderRepository
        >>> from food_orders.repositories import OrderRepository
        >>> validate_repository_protocol(
        ...     MemoryOrderRepository(), OrderRepository
        ... )
    """
    if not isinstance(repository, protocol):
        error_message = (
            f"Repository {type(repository).__name__} does not implement "
            f"{protocol.__name__} protocol. Missing or incorrect methods."
        )

        logger.error(
            "Repository protocol validation failed",
            extra={
                "repository_type": type(repository).__name__,
                "protocol_name": protocol.__name__,
            },
        )

        raise RepositoryValidationError(error_message)

    logger.debug(
        "Repository protocol validation passed",
        extra={
            "repository_type": type(repository).__name__,
            "protocol_name": protocol.__name__,
        },
    )


def ensure_repository_protocol(repository: object, protocol: Type[P]) -> P:
    """
    Validate and return a repository with proper type annotation.

    This provides both runtime validation and static type checking benefits.
    """
    validate_repository_protocol(repository, protocol)
    return repository  # type: ignore[return-value]


def validate_domain_model(data: Any, model_class: Type[M]) -> M:
    """
    Validate and convert stored data to a domain model using Pydantic.

    Args:
        data: Dictionary data, or a JSON document as read from a JSONB
            column or an object store
        model_class: Pydantic model class to validate against

    Returns:
        Validated domain model instance

    Raises:
        DomainValidationError: If validation fails
    """
    try:
        if isinstance(data, (str, bytes)):
            return model_class.model_validate_json(data)
        return model_class.model_validate(data)
    except ValidationError as e:
        logger.error(
            "Domain model validation failed",
            extra={
                "model_class": model_class.__name__,
                "validation_errors": e.errors(),
            },
        )
        raise DomainValidationError(
            f"Domain model validation failed for {model_class.__name__}: {e}"
        ) from e


# Convenience functions for common validation patterns
def ensure_order_repository(repo: object) -> Any:
    """Ensure an object satisfies the OrderRepository protocol"""
    from food_orders.repositories import OrderRepository

    return ensure_repository_protocol(repo, OrderRepository)  # type: ignore[type-abstract]


def ensure_payment_repository(repo: object) -> Any:
    """Ensure an object satisfies the PaymentRepository protocol"""
    from food_orders.repositories import PaymentRepository

    return ensure_repository_protocol(repo, PaymentRepository)  # type: ignore[type-abstract]


def ensure_activity_repository(repo: object) -> Any:
    """Ensure an object satisfies the ActivityRepository protocol"""
    from food_orders.repositories import ActivityRepository

    return ensure_repository_protocol(repo, ActivityRepository)  # type: ignore[type-abstract]


def ensure_authorization_service(service: object) -> Any:
    """Ensure an object satisfies the AuthorizationService protocol"""
    from food_orders.repositories import AuthorizationService

    return ensure_repository_protocol(service, AuthorizationService)  # type: ignore[type-abstract]
