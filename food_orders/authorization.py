"""
Role-based implementation of AuthorizationService.

Authentication happens upstream; by the time an Actor reaches the engines
its role has been established, so the check is a pure function of the
actor. An explicit allow-list of administrator IDs can be supplied for
deployments where roles are not propagated.
"""

import logging
from typing import Iterable, Optional

from food_orders.domain import Actor
from food_orders.repositories import AuthorizationService

logger = logging.getLogger(__name__)


class RoleAuthorizationService(AuthorizationService):
    def __init__(self, admin_user_ids: Optional[Iterable[str]] = None) -> None:
        self._admin_user_ids = frozenset(admin_user_ids or ())

    def is_admin(self, actor: Actor) -> bool:
        allowed = (
            actor.role == "admin" or actor.user_id in self._admin_user_ids
        )
        if not allowed:
            logger.debug(
                "Actor is not an administrator",
                extra={"user_id": actor.user_id, "role": actor.role},
            )
        return allowed
