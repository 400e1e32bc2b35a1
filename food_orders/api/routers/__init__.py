"""
API routers for the food ordering service.

- system: health check
- orders: customer and staff order operations
- admin: refund decisions and the admin dashboard
"""

from food_orders.api.routers import admin, orders, system

__all__ = ["admin", "orders", "system"]
