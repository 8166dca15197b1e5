from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Optional

from .errors import OwnerNotFoundError
from .models import UserAccount, utcnow
from .settings import Settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class UserDirectory(ABC):
    """Identity directory contract: maps opaque user ids to accounts."""

    @abstractmethod
    def create(self, user_id: str, email: str) -> Optional[UserAccount]:
        """Register an account. Return None if the id is already taken."""

    @abstractmethod
    def get_user(self, user_id: str) -> UserAccount:
        """
        Return the account for user_id.

        Raises:
            OwnerNotFoundError if no such account exists.
            DirectoryError if the directory itself cannot be read.
        """

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Delete an account. Return True if deleted, False if not found."""


class InMemoryUserDirectory(UserDirectory):
    """Thread-safe in-memory directory for tests and the default runtime."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: dict[str, UserAccount] = {}

    def create(self, user_id: str, email: str) -> Optional[UserAccount]:
        with self._lock:
            if user_id in self._users:
                return None
            account: UserAccount = {"id": user_id, "email": email, "created_at": utcnow()}
            self._users[user_id] = account
            return account.copy()

    def get_user(self, user_id: str) -> UserAccount:
        with self._lock:
            account = self._users.get(user_id)
            if account is None:
                raise OwnerNotFoundError(user_id)
            return account.copy()

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None


# PUBLIC_INTERFACE
class OwnerResolver:
    """
    Resolves a task owner id to the contact email used for notifications.
    """

    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    def resolve(self, owner_id: str) -> str:
        """
        Return the owner's email address.

        Raises:
            OwnerNotFoundError if the account no longer exists.
            DirectoryError if the lookup itself failed.
        """
        account = self._directory.get_user(owner_id)
        email = (account.get("email") or "").strip()
        if not email:
            # An account without an address cannot be notified; treat like a missing owner.
            logger.warning("Account %s has no email address", owner_id)
            raise OwnerNotFoundError(owner_id)
        return email


# PUBLIC_INTERFACE
def get_directory(settings: Settings) -> UserDirectory:
    """
    Factory to return the configured user directory.
    - memory: InMemoryUserDirectory
    - sqlite: SQLiteUserDirectory sharing the task database file
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteUserDirectory

        return SQLiteUserDirectory(settings.sqlite_db_path)
    return InMemoryUserDirectory()
