"""
Memory implementation of ActivityRepository.
"""

import logging
import uuid
from typing import List

from food_orders.domain import Activity
from food_orders.repositories import ActivityRepository

logger = logging.getLogger(__name__)


class MemoryActivityRepository(ActivityRepository):
    def __init__(self) -> None:
        logger.debug("Initializing MemoryActivityRepository")
        self._activities: List[Activity] = []

    async def append_activity(self, activity: Activity) -> Activity:
        stored = activity.model_copy(
            deep=True,
            update={
                "activity_id": activity.activity_id
                or f"activity-{uuid.uuid4()}"
            },
        )
        self._activities.append(stored)
        logger.info(
            "MemoryActivityRepository: Activity appended",
            extra={
                "activity_id": stored.activity_id,
                "user_id": stored.user_id,
                "action": stored.action,
            },
        )
        return stored.model_copy(deep=True)

    async def list_recent_activities(self, limit: int = 20) -> List[Activity]:
        # Newest first; among equal timestamps the later append wins.
        ordered = sorted(
            enumerate(self._activities),
            key=lambda pair: (pair[1].created_at, pair[0]),
            reverse=True,
        )
        return [activity.model_copy(deep=True) for _, activity in ordered[:limit]]

    @property
    def activities(self) -> List[Activity]:
        """Everything appended so far, in append order."""
        return [activity.model_copy(deep=True) for activity in self._activities]
