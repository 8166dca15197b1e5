from __future__ import annotations

from fastapi import Depends, Request

from .context import AppContext
from .directory import UserDirectory
from .repositories import TaskRepository


# PUBLIC_INTERFACE
def get_context(request: Request) -> AppContext:
    """Return the AppContext the application built at startup."""
    return request.app.state.context


def get_repo(context: AppContext = Depends(get_context)) -> TaskRepository:
    """
    Dependency wrapper for the task repository to keep endpoint signatures clean.
    """
    return context.repository


def get_user_directory(context: AppContext = Depends(get_context)) -> UserDirectory:
    return context.directory
