"""
Minio implementation of ActivityRepository.

Each activity is stored as its own JSON object. Object names start with the
activity's UTC timestamp, so the lexical order of names is the
chronological order of activities and listing the newest entries needs no
index.
"""

import io
import logging
import uuid
from datetime import timezone
from typing import List

from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError

from food_orders.domain import Activity
from food_orders.errors import StoreUnavailableError
from food_orders.repositories import ActivityRepository
from food_orders.validation import validate_domain_model

logger = logging.getLogger(__name__)


def activity_object_name(activity: Activity) -> str:
    created_at = activity.created_at
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc)
    return f"{created_at.strftime('%Y%m%dT%H%M%S%f')}-{activity.activity_id}"


class MinioActivityRepository(ActivityRepository):
    """
    Minio implementation of ActivityRepository.
    Uses Minio for persistence of Activity records.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str = "minioadmin",
        secret_key: str = "minioadmin",
        secure: bool = False,
        bucket_name: str = "activities",
    ):
        logger.debug(
            "Initializing MinioActivityRepository",
            extra={"minio_endpoint": endpoint, "bucket_name": bucket_name},
        )

        self.client = Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
        )
        self.bucket_name = bucket_name
        self._ensure_bucket_exists()

    def _ensure_bucket_exists(self) -> None:
        try:
            if not self.client.bucket_exists(self.bucket_name):
                logger.info(
                    "Creating activities bucket",
                    extra={"bucket_name": self.bucket_name},
                )
                self.client.make_bucket(self.bucket_name)
            else:
                logger.debug(
                    "Activities bucket already exists",
                    extra={"bucket_name": self.bucket_name},
                )
        except S3Error as e:
            logger.error(
                "Failed to create activities bucket",
                extra={"bucket_name": self.bucket_name, "error": str(e)},
            )
            raise

    async def append_activity(self, activity: Activity) -> Activity:
        """Store an activity record as a new Minio object."""
        if activity.activity_id is None:
            activity = activity.model_copy(
                update={"activity_id": f"activity-{uuid.uuid4()}"}
            )
        object_name = activity_object_name(activity)
        activity_json = activity.model_dump_json().encode("utf-8")

        try:
            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=object_name,
                data=io.BytesIO(activity_json),
                length=len(activity_json),
                content_type="application/json",
                metadata={
                    "user_id": activity.user_id,
                    "action": activity.action,
                },
            )
        except (S3Error, HTTPError) as e:
            logger.error(
                "MinioActivityRepository: Failed to store activity",
                extra={
                    "activity_id": activity.activity_id,
                    "object_name": object_name,
                    "error": str(e),
                },
            )
            raise StoreUnavailableError(
                f"Activity store unavailable: {e}"
            ) from e

        logger.info(
            "MinioActivityRepository: Activity appended",
            extra={
                "activity_id": activity.activity_id,
                "user_id": activity.user_id,
                "action": activity.action,
                "object_name": object_name,
            },
        )
        return activity

    async def list_recent_activities(self, limit: int = 20) -> List[Activity]:
        """Read the ``limit`` newest activity objects, newest first."""
        try:
            names = sorted(
                (
                    obj.object_name
                    for obj in self.client.list_objects(self.bucket_name)
                    if obj.object_name
                ),
                reverse=True,
            )[:limit]

            activities = []
            for name in names:
                response = self.client.get_object(
                    bucket_name=self.bucket_name, object_name=name
                )
                try:
                    data = response.read()
                finally:
                    response.close()
                    response.release_conn()
                activities.append(validate_domain_model(data, Activity))
        except (S3Error, HTTPError) as e:
            logger.error(
                "MinioActivityRepository: Failed to list activities",
                extra={"bucket_name": self.bucket_name, "error": str(e)},
            )
            raise StoreUnavailableError(
                f"Activity store unavailable: {e}"
            ) from e

        logger.debug(
            "MinioActivityRepository: Listed recent activities",
            extra={"limit": limit, "count": len(activities)},
        )
        return activities
