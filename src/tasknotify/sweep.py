"""
Overdue-task notification sweep.

One run:
- captures "now" (UTC),
- scans every stored task and keeps those with due_date strictly before now,
- for each overdue task resolves the owner's email and sends one notification,
  on a bounded worker pool, isolating failures per task,
- joins all branches and returns a summary.

The sweep never writes to the store. A task stays eligible, and is notified
again, on every run until its due date moves or it is deleted.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .context import AppContext
from .directory import OwnerResolver
from .errors import MalformedTaskError, OwnerNotFoundError
from .mailer import NotificationDispatcher
from .models import TaskEntity, as_utc, utcnow
from .repositories import TaskRepository

logger = logging.getLogger(__name__)

OVERDUE_SUBJECT = "Task Overdue Notification"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class OverdueTask:
    """Snapshot of an overdue task taken at scan time."""

    id: str
    title: str
    description: str
    due_date: datetime
    owner_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat(),
            "userId": self.owner_id,
        }


class ItemOutcome(str, Enum):
    SENT = "sent"
    SEND_FAILED = "send_failed"
    OWNER_NOT_FOUND = "owner_not_found"
    RESOLVE_FAILED = "resolve_failed"
    INVALID_TASK = "invalid_task"

    @property
    def attempted(self) -> bool:
        """True when an email was handed to the dispatcher."""
        return self in (ItemOutcome.SENT, ItemOutcome.SEND_FAILED)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class SweepResult:
    """
    Summary of one run.

    emails_sent counts dispatch attempts (owners that resolved), whether or
    not the provider accepted the message. outcomes maps task id to the
    per-item result and is kept out of the wire summary.
    """

    success: bool
    overdue_tasks: List[OverdueTask]
    emails_sent: int
    outcomes: Dict[str, ItemOutcome] = field(default_factory=dict)

    @property
    def emails_delivered(self) -> int:
        return sum(1 for o in self.outcomes.values() if o is ItemOutcome.SENT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "overdueTasks": [t.to_dict() for t in self.overdue_tasks],
            "emailsSent": self.emails_sent,
        }


def _snapshot(record: TaskEntity) -> OverdueTask:
    """
    Validate one stored record and freeze the fields the sweep needs.

    Raises:
        MalformedTaskError if id, owner or due date is missing or unreadable.
    """
    task_id = record.get("id")
    if not task_id:
        raise MalformedTaskError(None, "missing id")
    owner_id = record.get("owner_id")
    if not owner_id:
        raise MalformedTaskError(task_id, "missing owner_id")
    due = record.get("due_date")
    if not isinstance(due, datetime):
        raise MalformedTaskError(task_id, f"due_date is {due!r}, expected a timestamp")
    return OverdueTask(
        id=str(task_id),
        title=record.get("title") or "",
        description=record.get("description") or "",
        due_date=as_utc(due),  # type: ignore[arg-type]
        owner_id=str(owner_id),
    )


# PUBLIC_INTERFACE
class OverdueScan:
    """
    Reads the whole task collection and keeps tasks whose due date is
    strictly before the evaluation time. Output follows store order.

    With strict_due_dates a malformed record aborts the scan; otherwise it is
    logged and skipped. Ids of the records skipped by the last scan are kept
    in `invalid_ids`.
    """

    def __init__(self, repository: TaskRepository, *, strict_due_dates: bool = False) -> None:
        self._repository = repository
        self._strict = strict_due_dates
        self.invalid_ids: List[str] = []

    def scan(self, now: datetime) -> List[OverdueTask]:
        now = as_utc(now)  # type: ignore[assignment]
        overdue: List[OverdueTask] = []
        total = 0
        skipped = 0
        self.invalid_ids = []
        for record in self._repository.iter_all():
            total += 1
            try:
                task = _snapshot(record)
            except MalformedTaskError as exc:
                if self._strict:
                    raise
                skipped += 1
                if exc.task_id:
                    self.invalid_ids.append(str(exc.task_id))
                logger.warning("Skipping malformed task: %s", exc)
                continue
            if task.due_date < now:
                overdue.append(task)

        logger.info("Scanned %d tasks: %d overdue, %d skipped", total, len(overdue), skipped)
        return overdue


# PUBLIC_INTERFACE
def compose_overdue_email(task: OverdueTask) -> Tuple[str, str]:
    """Return (subject, plain-text body) of the notification for one overdue task."""
    body = (
        f'Your task "{task.title}" is overdue!\n'
        "\n"
        f"Due Date: {task.due_date.strftime('%Y-%m-%d')}\n"
        f"Description: {task.description}\n"
        "\n"
        "Please login to your account to update the task status.\n"
    )
    return OVERDUE_SUBJECT, body


def notify_owner(
    task: OverdueTask,
    resolver: OwnerResolver,
    dispatcher: NotificationDispatcher,
) -> ItemOutcome:
    """
    Resolve the owner of one overdue task and send the notification.

    Never raises: every failure is logged with task/owner context and turned
    into an outcome.
    """
    try:
        email = resolver.resolve(task.owner_id)
    except OwnerNotFoundError:
        logger.warning("Owner not found for overdue task task_id=%s user_id=%s", task.id, task.owner_id)
        return ItemOutcome.OWNER_NOT_FOUND
    except Exception:
        logger.exception("Error resolving owner task_id=%s user_id=%s", task.id, task.owner_id)
        return ItemOutcome.RESOLVE_FAILED

    subject, body = compose_overdue_email(task)
    try:
        sent = dispatcher.send(email, subject, body)
    except Exception:
        logger.exception("Dispatcher raised task_id=%s user_id=%s", task.id, task.owner_id)
        sent = False

    if not sent:
        logger.warning("Notification not accepted task_id=%s user_id=%s", task.id, task.owner_id)
        return ItemOutcome.SEND_FAILED
    return ItemOutcome.SENT


# PUBLIC_INTERFACE
def run_overdue_sweep(context: AppContext, now: Optional[datetime] = None) -> SweepResult:
    """
    Run one overdue sweep.

    Args:
        context: Store, resolver, dispatcher and settings for this process.
        now: Evaluation time; defaults to the current UTC time.

    Returns:
        SweepResult with success=True. Per-task failures never change that.

    Raises:
        StoreUnavailableError, MalformedTaskError (strict mode) or any error
        raised while reading the store. No partial summary is produced.
    """
    now = as_utc(now) if now is not None else utcnow()
    settings = context.settings
    logger.info("Starting overdue tasks check now=%s", now.isoformat())  # type: ignore[union-attr]

    scan = OverdueScan(context.repository, strict_due_dates=settings.sweep_strict_due_dates)
    try:
        overdue = scan.scan(now)  # type: ignore[arg-type]
    except Exception:
        logger.exception("Overdue sweep aborted during scan")
        raise

    invalid = {task_id: ItemOutcome.INVALID_TASK for task_id in scan.invalid_ids}
    if not overdue:
        logger.info("No overdue tasks")
        return SweepResult(success=True, overdue_tasks=[], emails_sent=0, outcomes=invalid)

    workers = min(settings.sweep_max_workers, len(overdue))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="overdue-sweep") as pool:
        # map() preserves submission order; leaving the block joins every branch
        results = list(
            pool.map(lambda task: notify_owner(task, context.resolver, context.dispatcher), overdue)
        )

    outcomes = {task.id: outcome for task, outcome in zip(overdue, results)}
    outcomes.update(invalid)
    result = SweepResult(
        success=True,
        overdue_tasks=overdue,
        emails_sent=sum(1 for o in results if o.attempted),
        outcomes=outcomes,
    )
    logger.info(
        "Overdue sweep done: overdue=%d attempted=%d delivered=%d",
        len(overdue),
        result.emails_sent,
        result.emails_delivered,
    )
    return result
