from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..auth import get_current_user_id
from ..deps import get_repo
from ..models import TaskEntity
from ..repositories import ListQuery, TaskRepository
from ..schemas import TaskCreate, TaskList, TaskOut, TaskUpdate
from ..utils import pagination_envelope

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)


def _owned_or_404(repo: TaskRepository, task_id: str, user_id: str) -> TaskEntity:
    """
    Load a task of the caller. Tasks of other owners are indistinguishable from missing ones.
    """
    item = repo.get(task_id)
    if not item or item["owner_id"] != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return item


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task owned by the caller and return the created resource.",
    responses={
        201: {"description": "Task created successfully"},
        401: {"description": "Caller not identified"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_repo),
) -> TaskOut:
    """
    Create a new task for the caller.
    """
    created = repo.create(user_id, payload)
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TaskList,
    summary="List Tasks",
    description=(
        "List the caller's tasks sorted by due date.\n\n"
        "Query parameters:\n"
        "- limit: max number of items to return (0..1000)\n"
        "- offset: number of items to skip (>=0)\n"
        "- order: asc (default, soonest first) or desc"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_tasks(
    limit: int = Query(100, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    order: Optional[str] = Query("asc", description="Due date order: 'asc' or 'desc'"),
    user_id: str = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_repo),
) -> TaskList:
    """
    List the caller's tasks ordered by due date.
    """
    ord_norm = (order or "asc").strip().lower()
    if ord_norm not in {"asc", "desc"}:
        raise HTTPException(status_code=400, detail="order must be 'asc' or 'desc'")

    items, total = repo.list(
        ListQuery(owner_id=user_id, limit=limit, offset=offset, descending=ord_norm == "desc")
    )
    envelope = pagination_envelope(
        items=[TaskOut(**it) for it in items],
        total=total,
        limit=limit,
        offset=offset,
    )
    return TaskList(**envelope)


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task of the caller by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"description": "Task not found"},
    },
)
def get_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_repo),
) -> TaskOut:
    return TaskOut(**_owned_or_404(repo, task_id, user_id))


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Replace Task",
    description="Replace title, description and due date of an existing task.",
    responses={
        200: {"description": "Task updated"},
        404: {"description": "Task not found"},
    },
)
def put_task(
    task_id: str,
    payload: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_repo),
) -> TaskOut:
    """
    Full replace implemented via the partial-update capable repository. Owner
    and creation time are kept.
    """
    _owned_or_404(repo, task_id, user_id)
    update = TaskUpdate(
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
    )
    updated = repo.update(task_id, update)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Partially update fields of a task.",
    responses={
        200: {"description": "Task updated"},
        404: {"description": "Task not found"},
    },
)
def patch_task(
    task_id: str,
    payload: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_repo),
) -> TaskOut:
    _owned_or_404(repo, task_id, user_id)
    updated = repo.update(task_id, payload)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task of the caller by ID.",
    responses={
        204: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_repo),
) -> None:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    _owned_or_404(repo, task_id, user_id)
    if not repo.delete(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return None
