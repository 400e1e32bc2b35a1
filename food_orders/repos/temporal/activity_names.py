"""
Activity name bases shared by activities.py and proxies.py.

Keeping them here lets the proxies module, which is imported by workflow
code, name the activities without importing the store implementations.
"""

ORDER_ACTIVITY_BASE = "food_orders.order_repo.postgresql"
PAYMENT_ACTIVITY_BASE = "food_orders.payment_repo.postgresql"
ACTIVITY_LOG_ACTIVITY_BASE = "food_orders.activity_repo.minio"

__all__ = [
    "ORDER_ACTIVITY_BASE",
    "PAYMENT_ACTIVITY_BASE",
    "ACTIVITY_LOG_ACTIVITY_BASE",
]
