from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a stored task.

    Fields:
    - id: Opaque store-assigned identifier (uuid4 hex)
    - owner_id: Identifier of the owning user account; immutable after creation
    - title: Non-empty title (trimmed on input via schemas)
    - description: Non-empty description
    - due_date: Timezone-aware UTC due timestamp, compared by the overdue sweep
    - created_at: Timezone-aware UTC creation timestamp, set once
    """

    id: str
    owner_id: str
    title: str
    description: str
    due_date: datetime
    created_at: datetime


# PUBLIC_INTERFACE
class UserAccount(TypedDict):
    """
    An account in the identity directory.

    Fields:
    - id: Opaque user identifier chosen by the identity provider
    - email: Contact address used for notifications
    - created_at: Registration timestamp (UTC)
    """

    id: str
    email: str
    created_at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive datetimes are interpreted as UTC; aware ones are converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
