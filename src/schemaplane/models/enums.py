"""Shared enums for models."""

from enum import Enum


class ProjectStatus(str, Enum):
    """Project provisioning status."""

    PROVISIONING = "provisioning"
    READY = "ready"
    FAILED = "failed"
