from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, Iterator, List, Optional, Tuple, Union

from .directory import UserDirectory
from .errors import DirectoryError, OwnerNotFoundError, StoreUnavailableError
from .models import TaskEntity, UserAccount, as_utc, utcnow
from .repositories import ListQuery, TaskRepository, new_task_id
from .schemas import TaskCreate, TaskUpdate


@dataclass(frozen=True)
class _TaskCols:
    table: str = "tasks"
    id: str = "id"
    owner_id: str = "owner_id"
    title: str = "title"
    description: str = "description"
    due_date: str = "due_date"
    created_at: str = "created_at"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    email: str = "email"
    created_at: str = "created_at"


_T = _TaskCols()
_U = _UserCols()


def _format_dt(value: datetime) -> str:
    # Fixed-width UTC text keeps lexical ORDER BY equal to chronological order
    return as_utc(value).isoformat(timespec="microseconds")  # type: ignore[union-attr]


def _parse_dt(value: Optional[str]) -> Union[datetime, str, None]:
    """
    Parse a stored timestamp. Unreadable text is returned unchanged so callers
    that validate records (the overdue scan) can report it.
    """
    if value is None:
        return None
    try:
        return as_utc(datetime.fromisoformat(value))
    except (TypeError, ValueError):
        return value


class _SQLiteBase:
    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.id} TEXT PRIMARY KEY,
                    {_T.owner_id} TEXT NOT NULL,
                    {_T.title} TEXT NOT NULL,
                    {_T.description} TEXT NOT NULL,
                    {_T.due_date} TEXT NOT NULL,
                    {_T.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_owner_due "
                f"ON {_T.table}({_T.owner_id}, {_T.due_date})"
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_U.table} (
                    {_U.id} TEXT PRIMARY KEY,
                    {_U.email} TEXT NOT NULL,
                    {_U.created_at} TEXT NOT NULL
                )
                """
            )


class SQLiteTaskRepository(_SQLiteBase, TaskRepository):
    """
    Lightweight SQLite repository implementing the TaskRepository interface.
    Natural iteration order is rowid (insertion) order.
    """

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_T.id]),
            "owner_id": str(row[_T.owner_id]),
            "title": str(row[_T.title]),
            "description": str(row[_T.description]),
            "due_date": _parse_dt(row[_T.due_date]),  # type: ignore[typeddict-item]
            "created_at": _parse_dt(row[_T.created_at]),  # type: ignore[typeddict-item]
        }

    def _fetch(self, conn: sqlite3.Connection, task_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_T.table} WHERE {_T.id} = ?", (task_id,)).fetchone()

    def create(self, owner_id: str, data: TaskCreate) -> TaskEntity:
        task_id = new_task_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_T.table} ({_T.id}, {_T.owner_id}, {_T.title}, {_T.description},
                    {_T.due_date}, {_T.created_at})
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (task_id, owner_id, data.title, data.description, _format_dt(data.due_date), _format_dt(utcnow())),
            )
            row = self._fetch(conn, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._fetch(conn, task_id)
            return self._row_to_entity(row) if row else None

    def update(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._fetch(conn, task_id)
            if not row:
                return None

            title = data.title if data.title is not None else row[_T.title]
            description = data.description if data.description is not None else row[_T.description]
            due_date = _format_dt(data.due_date) if data.due_date is not None else row[_T.due_date]
            conn.execute(
                f"""
                UPDATE {_T.table}
                SET {_T.title} = ?, {_T.description} = ?, {_T.due_date} = ?
                WHERE {_T.id} = ?
                """,
                (title, description, due_date, task_id),
            )
            row2 = self._fetch(conn, task_id)
            assert row2 is not None
            return self._row_to_entity(row2)

    def delete(self, task_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_T.table} WHERE {_T.id} = ?", (task_id,))
            return cur.rowcount > 0

    def list(self, query: ListQuery) -> Tuple[List[TaskEntity], int]:
        direction = "DESC" if query.descending else "ASC"
        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM {_T.table} WHERE {_T.owner_id} = ?",
                (query.owner_id,),
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0

            rows = conn.execute(
                f"""
                SELECT * FROM {_T.table}
                WHERE {_T.owner_id} = ?
                ORDER BY {_T.due_date} {direction}, {_T.created_at} {direction}
                LIMIT ? OFFSET ?
                """,
                (query.owner_id, max(query.limit, 0), max(query.offset, 0)),
            ).fetchall()
            return [self._row_to_entity(r) for r in rows], total

    def iter_all(self) -> Iterator[TaskEntity]:
        try:
            with self._conn() as conn:
                rows = conn.execute(f"SELECT * FROM {_T.table} ORDER BY rowid").fetchall()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"cannot read {_T.table} from {self._db_path}: {exc}") from exc
        return (self._row_to_entity(r) for r in rows)


class SQLiteUserDirectory(_SQLiteBase, UserDirectory):
    """SQLite-backed identity directory; shares the database file with the task store."""

    def _row_to_account(self, row: sqlite3.Row) -> UserAccount:
        return {
            "id": str(row[_U.id]),
            "email": str(row[_U.email]),
            "created_at": _parse_dt(row[_U.created_at]),  # type: ignore[typeddict-item]
        }

    def create(self, user_id: str, email: str) -> Optional[UserAccount]:
        with self._conn() as conn:
            try:
                conn.execute(
                    f"INSERT INTO {_U.table} ({_U.id}, {_U.email}, {_U.created_at}) VALUES (?, ?, ?)",
                    (user_id, email, _format_dt(utcnow())),
                )
            except sqlite3.IntegrityError:
                return None
            row = conn.execute(f"SELECT * FROM {_U.table} WHERE {_U.id} = ?", (user_id,)).fetchone()
            assert row is not None
            return self._row_to_account(row)

    def get_user(self, user_id: str) -> UserAccount:
        try:
            with self._conn() as conn:
                row = conn.execute(f"SELECT * FROM {_U.table} WHERE {_U.id} = ?", (user_id,)).fetchone()
        except sqlite3.Error as exc:
            raise DirectoryError(f"lookup of {user_id!r} failed: {exc}") from exc
        if row is None:
            raise OwnerNotFoundError(user_id)
        return self._row_to_account(row)

    def delete(self, user_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_U.table} WHERE {_U.id} = ?", (user_id,))
            return cur.rowcount > 0
