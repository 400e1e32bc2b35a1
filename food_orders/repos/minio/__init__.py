"""Minio implementation of the activity log."""

from .activity import MinioActivityRepository

__all__ = ["MinioActivityRepository"]
