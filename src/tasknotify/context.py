from __future__ import annotations

from dataclasses import dataclass

from .directory import OwnerResolver, UserDirectory, get_directory
from .mailer import NotificationDispatcher, get_email_channel
from .repositories import TaskRepository, get_repository
from .settings import Settings


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class AppContext:
    """
    Collaborators built once at process start and passed to the API and the sweep.

    Replaces module-level client singletons: whatever owns the process (the
    FastAPI app, the CLI, a test) builds one and hands it down.
    """

    settings: Settings
    repository: TaskRepository
    directory: UserDirectory
    resolver: OwnerResolver
    dispatcher: NotificationDispatcher


# PUBLIC_INTERFACE
def build_context(settings: Settings) -> AppContext:
    """Construct the store, directory, resolver and dispatcher described by settings."""
    directory = get_directory(settings)
    return AppContext(
        settings=settings,
        repository=get_repository(settings),
        directory=directory,
        resolver=OwnerResolver(directory),
        dispatcher=NotificationDispatcher(get_email_channel(settings), settings.email_sender),
    )
