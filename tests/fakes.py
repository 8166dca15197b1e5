from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Optional

from botocore.exceptions import ClientError

from tasknotify.context import AppContext
from tasknotify.directory import InMemoryUserDirectory, OwnerResolver, UserDirectory
from tasknotify.errors import DirectoryError, StoreUnavailableError
from tasknotify.mailer import EmailChannel, NotificationDispatcher
from tasknotify.models import TaskEntity
from tasknotify.repositories import InMemoryRepository, TaskRepository
from tasknotify.settings import Settings, get_settings

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
SENDER = "noreply@tasks.test"


@dataclass(slots=True)
class SentEmail:
    source: str
    to_address: str
    subject: str
    body: str


class RecordingChannel(EmailChannel):
    """
    Fake EmailChannel used by sweep tests.

    - Records every accepted message
    - Rejects recipients listed in reject like SES does for unverified addresses
    - Optionally sleeps per call and tracks peak concurrency
    """

    def __init__(self, reject: Iterable[str] = (), delay: float = 0.0) -> None:
        self.sent: List[SentEmail] = []
        self.calls = 0
        self.peak_in_flight = 0
        self._in_flight = 0
        self._reject = set(reject)
        self._delay = delay
        self._lock = threading.Lock()

    def send(self, *, source: str, to_address: str, subject: str, body: str) -> Optional[str]:
        with self._lock:
            self.calls += 1
            self._in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
        try:
            if self._delay:
                time.sleep(self._delay)
            if to_address in self._reject:
                raise ClientError(
                    {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified."}},
                    "SendEmail",
                )
            with self._lock:
                self.sent.append(SentEmail(source, to_address, subject, body))
                return f"msg-{len(self.sent)}"
        finally:
            with self._lock:
                self._in_flight -= 1

    @property
    def recipients(self) -> List[str]:
        return sorted(m.to_address for m in self.sent)


class SeededRepository(InMemoryRepository):
    """In-memory store that also accepts fully-formed records, malformed ones included."""

    def add(self, entity: TaskEntity) -> None:
        with self._lock:
            self._items[entity["id"]] = entity.copy()


class UnreachableRepository(InMemoryRepository):
    """Task store whose full read always fails."""

    def iter_all(self) -> Iterator[TaskEntity]:
        raise StoreUnavailableError("connection refused")


class FlakyDirectory(InMemoryUserDirectory):
    """Directory that errors (not 'not found') for selected ids."""

    def __init__(self, broken_ids: Iterable[str] = ()) -> None:
        super().__init__()
        self._broken = set(broken_ids)

    def get_user(self, user_id: str):
        if user_id in self._broken:
            raise DirectoryError(f"timeout looking up {user_id}")
        return super().get_user(user_id)


def make_settings(**overrides: Any) -> Settings:
    base = replace(
        get_settings(),
        persistence_backend="memory",
        email_backend="log",
        email_sender=SENDER,
        enable_basic_auth=False,
        basic_auth_username=None,
        basic_auth_password=None,
        sweep_max_workers=4,
        sweep_strict_due_dates=False,
        enable_sweep_scheduler=False,
    )
    return replace(base, **overrides)


def make_context(
    *,
    repository: Optional[TaskRepository] = None,
    directory: Optional[UserDirectory] = None,
    channel: Optional[EmailChannel] = None,
    **settings_overrides: Any,
) -> AppContext:
    settings = make_settings(**settings_overrides)
    directory = directory if directory is not None else InMemoryUserDirectory()
    return AppContext(
        settings=settings,
        repository=repository if repository is not None else SeededRepository(),
        directory=directory,
        resolver=OwnerResolver(directory),
        dispatcher=NotificationDispatcher(channel if channel is not None else RecordingChannel(), settings.email_sender),
    )


def add_task(
    repo: SeededRepository,
    task_id: str,
    owner_id: str,
    due_date: Any,
    title: Optional[str] = None,
    description: str = "details",
) -> None:
    repo.add(
        {
            "id": task_id,
            "owner_id": owner_id,
            "title": title or f"Task {task_id}",
            "description": description,
            "due_date": due_date,
            "created_at": NOW,
        }
    )
