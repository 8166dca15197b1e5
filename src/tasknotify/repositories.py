from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import RLock
from typing import Iterator, List, Optional, Tuple

from .models import TaskEntity, utcnow
from .schemas import TaskCreate, TaskUpdate
from .settings import Settings


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing one owner's tasks.
    """
    owner_id: str
    limit: int = 100
    offset: int = 0
    descending: bool = False  # sorted by due_date; ties broken by created_at


def new_task_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """Abstract repository contract for task storage backends."""

    @abstractmethod
    def create(self, owner_id: str, data: TaskCreate) -> TaskEntity:
        """Create and return a new TaskEntity owned by owner_id."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def update(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        """Update provided fields of an existing TaskEntity. Return updated entity or None if not found."""

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Delete a TaskEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: ListQuery) -> Tuple[List[TaskEntity], int]:
        """
        Return a slice of one owner's tasks sorted by due_date and the owner's total count.
        """

    @abstractmethod
    def iter_all(self) -> Iterator[TaskEntity]:
        """
        Yield every stored task in the store's natural order, unfiltered.

        Raises:
            StoreUnavailableError if the backend cannot be read.
        """


class InMemoryRepository(TaskRepository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    Iteration order is insertion order.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, TaskEntity] = {}

    def create(self, owner_id: str, data: TaskCreate) -> TaskEntity:
        entity: TaskEntity = {
            "id": new_task_id(),
            "owner_id": owner_id,
            "title": data.title,
            "description": data.description,
            "due_date": data.due_date,
            "created_at": utcnow(),
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def update(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None

            updated = existing.copy()
            if data.title is not None:
                updated["title"] = data.title
            if data.description is not None:
                updated["description"] = data.description
            if data.due_date is not None:
                updated["due_date"] = data.due_date

            self._items[task_id] = updated
            return updated.copy()

    def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None

    def list(self, query: ListQuery) -> Tuple[List[TaskEntity], int]:
        with self._lock:
            owned = [t for t in self._items.values() if t["owner_id"] == query.owner_id]
            total = len(owned)
            items_sorted = sorted(
                owned,
                key=lambda t: (t["due_date"], t["created_at"]),
                reverse=query.descending,
            )
            start = max(query.offset, 0)
            end = start + max(query.limit, 0)
            return [t.copy() for t in items_sorted[start:end]], total

    def iter_all(self) -> Iterator[TaskEntity]:
        # Snapshot under the lock so concurrent writers don't break iteration
        with self._lock:
            snapshot = [t.copy() for t in self._items.values()]
        return iter(snapshot)


# PUBLIC_INTERFACE
def get_repository(settings: Settings) -> TaskRepository:
    """
    Factory to return the configured task repository.
    - memory: InMemoryRepository
    - sqlite: SQLiteTaskRepository at settings.sqlite_db_path
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository

        return SQLiteTaskRepository(settings.sqlite_db_path)
    return InMemoryRepository()
