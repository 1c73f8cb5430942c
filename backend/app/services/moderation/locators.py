from __future__ import annotations

from app.services.moderation.errors import InvalidImageError


PENDING_PREFIX = "pending/"


def normalize_locator(locator) -> str:
    value = (str(locator) if locator is not None else "").strip()
    if not value:
        raise InvalidImageError("image locator is required")
    return value


def is_pending(locator: str) -> bool:
    return (locator or "").startswith(PENDING_PREFIX)


def public_name_for(pending_name: str) -> str:
    """Strip the pending prefix exactly once."""
    if not is_pending(pending_name):
        raise InvalidImageError(f"not a pending locator: {pending_name}")
    name = pending_name[len(PENDING_PREFIX):]
    if not name:
        raise InvalidImageError("pending locator has no object name")
    return name
