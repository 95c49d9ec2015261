"""Utility modules for the workflow core."""

from .clock import utc_now
from .ids import coerce_uuid

__all__ = [
    "coerce_uuid",
    "utc_now",
]
