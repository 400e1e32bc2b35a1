"""
Temporal decorators for automatically creating activities and workflow proxies

This module provides decorators that automatically:
1. Wrap async protocol methods of a store as Temporal activities
2. Generate workflow proxy classes that delegate to those activities

Business errors have to survive the trip through Temporal. On the activity
side the listed exception types are turned into non-retryable
ApplicationErrors whose ``type`` is the exception class name; on the
workflow side the proxy turns such failures back into the original
exception types, so code running against a proxy sees the same exceptions
as code running against the store itself.
"""

import functools
import inspect
import logging
from datetime import timedelta
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
)

from pydantic import TypeAdapter
from temporalio import activity, workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, ApplicationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(seconds=30),
    maximum_attempts=5,
)


def _discover_protocol_methods(
    cls_hierarchy: Tuple[type, ...],
) -> Dict[str, Any]:
    """
    Find the async public methods declared by the Protocols in a class MRO.

    Both decorators use this function so that activity registrations and
    workflow proxies always cover exactly the same methods.

    Args:
        cls_hierarchy: The class MRO (method resolution order)

    Returns:
        Dict mapping method names to method objects
    """
    methods: Dict[str, Any] = {}

    for base_class in cls_hierarchy:
        if base_class is object:
            continue
        if not getattr(base_class, "_is_protocol", False):
            continue

        logger.debug(f"Processing protocol class: {base_class.__name__}")
        for name in base_class.__dict__:
            if name in methods or name.startswith("_"):
                continue
            method = getattr(base_class, name)
            if inspect.iscoroutinefunction(method):
                methods[name] = method

    logger.debug(
        f"Protocol discovery found {len(methods)} methods: "
        f"{list(methods.keys())}"
    )
    return methods


def temporal_activity_registration(
    activity_prefix: str,
    non_retryable: Tuple[Type[BaseException], ...] = (),
) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator that wraps the protocol methods of a store as Temporal
    activities.

    Activity names are the prefix joined with the method name.

    Args:
        activity_prefix: Prefix for activity names (e.g.,
            "food_orders.order_repo.postgresql")
        non_retryable: Exception types that signal a business outcome
            rather than a transient failure. They are re-raised as
            non-retryable ApplicationErrors typed with the class name.

    Example:
        @temporal_activity_registration(
            ORDER_ACTIVITY_BASE, non_retryable=(OrderWorkflowError,)
        )
        class TemporalPostgreSQLOrderRepository(PostgreSQLOrderRepository):
            pass

        # save_order -> "food_orders.order_repo.postgresql.save_order"
    """

    def decorator(cls: Type[T]) -> Type[T]:
        wrapped_methods = []

        for name, method in _discover_protocol_methods(cls.__mro__).items():
            activity_name = f"{activity_prefix}.{name}"
            # Resolve the implementation, not the protocol stub
            implementation = getattr(cls, name)

            def create_wrapper_method(
                original_method: Callable[..., Any], method_name: str
            ) -> Callable[..., Any]:
                @functools.wraps(original_method)
                async def wrapper_method(*args: Any, **kwargs: Any) -> Any:
                    try:
                        return await original_method(*args, **kwargs)
                    except non_retryable as e:
                        logger.info(
                            "Activity raised a non-retryable error",
                            extra={
                                "activity_name": f"{activity_prefix}."
                                f"{method_name}",
                                "error_type": type(e).__name__,
                                "error_message": str(e),
                            },
                        )
                        raise ApplicationError(
                            str(e),
                            type=type(e).__name__,
                            non_retryable=True,
                        ) from e

                # Keep the protocol signature so the data converter can
                # rebuild typed arguments.
                wrapper_method.__name__ = method_name
                wrapper_method.__qualname__ = f"{cls.__name__}.{method_name}"
                wrapper_method.__annotations__ = getattr(
                    original_method, "__annotations__", {}
                )
                return wrapper_method

            wrapper = create_wrapper_method(implementation, name)
            setattr(cls, name, activity.defn(name=activity_name)(wrapper))
            wrapped_methods.append(name)

        logger.info(
            f"Temporal activity registration decorator applied to "
            f"{cls.__name__}",
            extra={
                "wrapped_methods": wrapped_methods,
                "activity_prefix": activity_prefix,
            },
        )
        return cls

    return decorator


def temporal_workflow_proxy(
    activity_base: str,
    default_timeout_seconds: int = 30,
    retry_policy: Optional[RetryPolicy] = None,
    error_types: Optional[Mapping[str, Type[Exception]]] = None,
) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator that implements a protocol inside workflows by calling
    the activities registered under ``activity_base``.

    Args:
        activity_base: Base activity name, matching the prefix given to
            temporal_activity_registration
        default_timeout_seconds: start-to-close timeout of each activity
        retry_policy: Retry policy for transient failures. Defaults to
            DEFAULT_RETRY_POLICY. Non-retryable errors are never retried.
        error_types: Maps ApplicationError types to the exception classes
            the proxy raises in their place

    Example:
        @temporal_workflow_proxy(
            ORDER_ACTIVITY_BASE,
            default_timeout_seconds=10,
            error_types=BUSINESS_ERRORS,
        )
        class WorkflowOrderRepositoryProxy(OrderRepository):
            pass
    """
    policy = retry_policy or DEFAULT_RETRY_POLICY
    known_errors = dict(error_types or {})

    def decorator(cls: Type[T]) -> Type[T]:
        wrapped_methods = []

        for method_name, original_method in _discover_protocol_methods(
            cls.__mro__
        ).items():
            return_annotation = inspect.signature(
                original_method
            ).return_annotation
            adapter: Optional[TypeAdapter[Any]] = None
            if return_annotation not in (inspect.Signature.empty, None):
                adapter = TypeAdapter(return_annotation)

            def create_workflow_method(
                method_name: str,
                adapter: Optional[TypeAdapter[Any]],
                original_method: Any,
            ) -> Callable[..., Any]:
                activity_name = f"{activity_base}.{method_name}"

                @functools.wraps(original_method)
                async def workflow_method(
                    self: Any, *args: Any, **kwargs: Any
                ) -> Any:
                    if kwargs:
                        raise ValueError(
                            f"kwargs not supported in workflow proxy "
                            f"for {method_name}. Use positional args."
                        )

                    logger.debug(
                        f"Workflow: Calling {method_name} activity",
                        extra={
                            "activity_name": activity_name,
                            "args_count": len(args),
                        },
                    )
                    try:
                        raw_result = await workflow.execute_activity(
                            activity_name,
                            args=args,
                            start_to_close_timeout=self.activity_timeout,
                            retry_policy=self.activity_retry_policy,
                        )
                    except ActivityError as e:
                        cause = e.cause
                        if (
                            isinstance(cause, ApplicationError)
                            and cause.type in known_errors
                        ):
                            raise known_errors[cause.type](
                                cause.message
                            ) from e
                        raise

                    if adapter is None or raw_result is None:
                        return raw_result
                    return adapter.validate_python(raw_result)

                return workflow_method

            setattr(
                cls,
                method_name,
                create_workflow_method(method_name, adapter, original_method),
            )
            wrapped_methods.append(method_name)

        def __init__(proxy_self: Any) -> None:
            super(cls, proxy_self).__init__()
            proxy_self.activity_timeout = timedelta(
                seconds=default_timeout_seconds
            )
            proxy_self.activity_retry_policy = policy

        setattr(cls, "__init__", __init__)

        logger.info(
            f"Temporal workflow proxy decorator applied to {cls.__name__}",
            extra={
                "wrapped_methods": wrapped_methods,
                "activity_base": activity_base,
                "default_timeout_seconds": default_timeout_seconds,
            },
        )
        return cls

    return decorator
