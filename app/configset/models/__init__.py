"""Data models for configset.

This module exports the core data structures used throughout the application.
"""

from configset.models.resource import ResourceRef, split_api_version
from configset.models.result import ObjectAction, ObjectResult, RunOutcome
from configset.models.set_info import SetInfo, create_set_info, validate_set_name

__all__ = [
    "ObjectAction",
    "ObjectResult",
    "ResourceRef",
    "RunOutcome",
    "SetInfo",
    "create_set_info",
    "split_api_version",
    "validate_set_name",
]
