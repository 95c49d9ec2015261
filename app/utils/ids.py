"""Identifier helpers."""

from typing import Any, Optional
from uuid import UUID


def coerce_uuid(value: Any) -> Optional[UUID]:
    """Return ``value`` as a UUID, or None if it cannot be one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None
