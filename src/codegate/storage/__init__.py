"""Object storage for snapshots and reports."""

from .base import ObjectStorage
from .local import LocalObjectStorage

__all__ = ["ObjectStorage", "LocalObjectStorage"]
