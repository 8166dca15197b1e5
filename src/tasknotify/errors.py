from __future__ import annotations

from typing import Optional


class TaskNotifyError(Exception):
    """Base class for errors raised by the store, directory and sweep layers."""


# PUBLIC_INTERFACE
class StoreUnavailableError(TaskNotifyError):
    """The task store could not be read. Fatal for a sweep run."""


# PUBLIC_INTERFACE
class MalformedTaskError(TaskNotifyError):
    """A stored task is missing a field or holds an unreadable timestamp."""

    def __init__(self, task_id: Optional[str], reason: str) -> None:
        super().__init__(f"task {task_id!r} is malformed: {reason}")
        self.task_id = task_id
        self.reason = reason


# PUBLIC_INTERFACE
class OwnerNotFoundError(TaskNotifyError):
    """The account owning a task no longer exists in the directory."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(f"owner {owner_id!r} not found")
        self.owner_id = owner_id


# PUBLIC_INTERFACE
class DirectoryError(TaskNotifyError):
    """The identity directory failed while looking up an account."""
