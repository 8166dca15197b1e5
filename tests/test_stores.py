from __future__ import annotations

import sqlite3
from datetime import timedelta

import pytest

from tasknotify.db import SQLiteTaskRepository, SQLiteUserDirectory
from tasknotify.directory import InMemoryUserDirectory, OwnerResolver, get_directory
from tasknotify.errors import OwnerNotFoundError, StoreUnavailableError
from tasknotify.repositories import InMemoryRepository, ListQuery, get_repository
from tasknotify.schemas import TaskCreate, TaskUpdate
from tasknotify.sweep import OverdueScan

from .fakes import NOW, make_settings


def _create(repo, owner, title, due):
    return repo.create(owner, TaskCreate(title=title, description=f"{title} details", due_date=due))


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteTaskRepository(str(tmp_path / "tasks.db"))
    return InMemoryRepository()


class TestTaskRepository:
    def test_create_get_update_delete(self, repo):
        created = _create(repo, "alice", "Write report", NOW + timedelta(days=1))
        assert len(created["id"]) == 32
        assert created["owner_id"] == "alice"
        assert created["due_date"] == NOW + timedelta(days=1)

        fetched = repo.get(created["id"])
        assert fetched == created

        updated = repo.update(created["id"], TaskUpdate(title="Write final report"))
        assert updated["title"] == "Write final report"
        assert updated["description"] == "Write report details"
        assert updated["owner_id"] == "alice"

        assert repo.delete(created["id"]) is True
        assert repo.get(created["id"]) is None
        assert repo.delete(created["id"]) is False
        assert repo.update(created["id"], TaskUpdate(title="x")) is None

    def test_list_is_owner_scoped_and_sorted_by_due_date(self, repo):
        _create(repo, "alice", "later", NOW + timedelta(days=3))
        _create(repo, "alice", "soon", NOW + timedelta(hours=1))
        _create(repo, "bob", "bobs", NOW)
        _create(repo, "alice", "middle", NOW + timedelta(days=1))

        items, total = repo.list(ListQuery(owner_id="alice"))
        assert total == 3
        assert [t["title"] for t in items] == ["soon", "middle", "later"]

        items_desc, _ = repo.list(ListQuery(owner_id="alice", descending=True))
        assert [t["title"] for t in items_desc] == ["later", "middle", "soon"]

        page, total = repo.list(ListQuery(owner_id="alice", limit=1, offset=1))
        assert total == 3
        assert [t["title"] for t in page] == ["middle"]

    def test_iter_all_returns_every_owner_in_insertion_order(self, repo):
        for title in ("one", "two", "three"):
            _create(repo, title, title, NOW)

        assert [t["title"] for t in repo.iter_all()] == ["one", "two", "three"]


class TestSQLiteSpecifics:
    def test_unreadable_due_date_is_reported_by_scan(self, tmp_path):
        path = str(tmp_path / "tasks.db")
        repo = SQLiteTaskRepository(path)
        _create(repo, "alice", "fine", NOW - timedelta(days=1))
        with sqlite3.connect(path) as conn:
            conn.execute(
                "INSERT INTO tasks (id, owner_id, title, description, due_date, created_at) "
                "VALUES ('bad', 'alice', 'Bad', 'x', 'not-a-date', ?)",
                (NOW.isoformat(),),
            )

        records = list(repo.iter_all())
        assert records[1]["due_date"] == "not-a-date"
        assert [t.title for t in OverdueScan(repo).scan(NOW)] == ["fine"]

    def test_missing_table_is_store_unavailable(self, tmp_path):
        path = str(tmp_path / "tasks.db")
        repo = SQLiteTaskRepository(path)
        with sqlite3.connect(path) as conn:
            conn.execute("DROP TABLE tasks")

        with pytest.raises(StoreUnavailableError):
            list(repo.iter_all())

    def test_tasks_survive_reopen(self, tmp_path):
        path = str(tmp_path / "nested" / "tasks.db")
        created = _create(SQLiteTaskRepository(path), "alice", "persisted", NOW)

        assert SQLiteTaskRepository(path).get(created["id"])["title"] == "persisted"


@pytest.fixture(params=["memory", "sqlite"])
def directory(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteUserDirectory(str(tmp_path / "tasks.db"))
    return InMemoryUserDirectory()


class TestDirectory:
    def test_create_get_delete(self, directory):
        created = directory.create("alice", "alice@example.com")
        assert created["email"] == "alice@example.com"
        assert directory.create("alice", "other@example.com") is None

        assert directory.get_user("alice")["email"] == "alice@example.com"
        assert directory.delete("alice") is True
        assert directory.delete("alice") is False
        with pytest.raises(OwnerNotFoundError):
            directory.get_user("alice")

    def test_resolver_returns_email(self, directory):
        directory.create("alice", "alice@example.com")

        assert OwnerResolver(directory).resolve("alice") == "alice@example.com"

    def test_resolver_missing_owner(self, directory):
        with pytest.raises(OwnerNotFoundError) as exc_info:
            OwnerResolver(directory).resolve("ghost")
        assert exc_info.value.owner_id == "ghost"


class TestFactories:
    def test_memory_backends(self):
        settings = make_settings(persistence_backend="memory")

        assert isinstance(get_repository(settings), InMemoryRepository)
        assert isinstance(get_directory(settings), InMemoryUserDirectory)

    def test_sqlite_backends_share_file(self, tmp_path):
        settings = make_settings(persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "app.db"))

        assert isinstance(get_repository(settings), SQLiteTaskRepository)
        assert isinstance(get_directory(settings), SQLiteUserDirectory)
        assert (tmp_path / "app.db").exists()
