"""
Temporal repository utilities.

This module provides the decorators that expose a repository as Temporal
activities on the worker side, and the matching workflow-side proxy that
calls those activities.
"""

from .decorators import temporal_activity_registration, temporal_workflow_proxy

__all__ = ["temporal_activity_registration", "temporal_workflow_proxy"]
