"""
Repository interfaces defined as Protocols.

All repository operations in this module follow these principles:

- **Conditional writes**: Order writes carry the version that was read.
  A store that finds a different version writes nothing and raises
  ConcurrentUpdateError, so a precondition check and the write it guards
  are never separated by a race window.

- **Idempotency**: Each engine operation stamps its order with a fresh
  write token. A write whose token is already stored at the next version
  returns the stored order without writing again, so a retry after a lost
  response is safe. Another caller with identical content is still a
  conflict.

- **Workflow Safety**: All operations are safe to call from deterministic
  workflow contexts. Non-deterministic work (ID generation, timestamps of
  storage) belongs to the implementations, which run as activities.

- **Domain Objects**: Methods accept and return domain objects or primitives,
  never framework-specific types.

In Temporal workflow contexts, these protocols are implemented by workflow
proxies that delegate to activities. Proxies only support positional
arguments, so optional parameters are passed explicitly.
"""

from typing import List, Optional, Protocol, runtime_checkable

from food_orders.domain import (
    Activity,
    Actor,
    Order,
    Payment,
    RefundStatus,
)


@runtime_checkable
class OrderRepository(Protocol):
    """Persists orders together with their embedded refund details."""

    async def get_order(self, order_id: str) -> Optional[Order]:
        """Retrieve an order by its ID.

        Args:
            order_id: The ID of the order to retrieve.

        Returns:
            The Order domain object if found, None otherwise.
        """
        ...

    async def save_order(
        self, order: Order, expected_version: Optional[int]
    ) -> Order:
        """Persist the state of an order.

        Args:
            order: The Order domain object to save.
            expected_version: The version the caller read. None writes
                unconditionally and is meant for seeding and imports.

        Returns:
            The stored order, with ``version`` incremented and
            ``updated_at`` set.

        Raises:
            ConcurrentUpdateError: If the stored version differs from
                ``expected_version``.
        """
        ...

    async def commit_refund_decision(
        self,
        order: Order,
        payment: Optional[Payment],
        expected_version: int,
    ) -> Order:
        """Atomically persist a refund decision.

        The order is written under the same version check as save_order and,
        when ``payment`` is given, the payment record is written in the same
        transaction. Either both writes happen or neither does.

        Raises:
            ConcurrentUpdateError: If the stored order version differs from
                ``expected_version``.
        """
        ...

    async def list_orders_by_refund_status(
        self, refund_status: RefundStatus
    ) -> List[Order]:
        """Return orders whose refund details are in ``refund_status``."""
        ...


@runtime_checkable
class PaymentRepository(Protocol):
    """Holds one payment record per order."""

    async def get_payment_for_order(self, order_id: str) -> Optional[Payment]:
        """Retrieve the payment record attached to an order.

        Returns:
            Payment object if found, None otherwise
        """
        ...

    async def save_payment(self, payment: Payment) -> None:
        """Persist a payment record, keyed by its order ID."""
        ...


@runtime_checkable
class ActivityRepository(Protocol):
    """Append-only audit trail of actions on orders."""

    async def append_activity(self, activity: Activity) -> Activity:
        """Append an activity record.

        Implementations assign ``activity_id`` when it is missing, which
        keeps ID generation out of workflow code.

        Returns:
            The stored activity, with its ID.
        """
        ...

    async def list_recent_activities(self, limit: int) -> List[Activity]:
        """Return the ``limit`` most recent activities, newest first."""
        ...


@runtime_checkable
class AuthorizationService(Protocol):
    """Decides whether an actor holds administrative authority.

    This check is pure and deterministic, so it is called directly rather
    than through an activity.
    """

    def is_admin(self, actor: Actor) -> bool:
        ...
