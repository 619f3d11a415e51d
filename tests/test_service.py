from datetime import datetime

import pytest
from sqlalchemy import insert, text
from sqlalchemy.exc import OperationalError

from conftest import T0, make_todo, reminder_at
from todo_rpc.db import ConnectionPool
from todo_rpc.errors import (
    InvalidReminderError,
    InvariantViolationError,
    StatusCode,
    StoreFailureError,
    TodoNotFoundError,
    UnsupportedVersionError,
)
from todo_rpc.models import todo_table
from todo_rpc.schemas import (
    CreateRequest,
    DeleteRequest,
    ReadAllRequest,
    ReadByTitleRequest,
    ReadRequest,
    Timestamp,
    UpdateRequest,
)
from todo_rpc.service import TodoService


def create(service, **kwargs) -> int:
    return service.create(CreateRequest(api="v1", todo=make_todo(**kwargs))).id


def count_rows(pool) -> int:
    with pool.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM todo")).scalar_one()


class TestCheckApi:
    @pytest.mark.parametrize("api", ["", "v1"])
    def test_supported(self, service, api):
        service.check_api(api)

    @pytest.mark.parametrize("api", ["v2", "V1", "v1 ", "latest"])
    def test_unsupported(self, service, api):
        with pytest.raises(UnsupportedVersionError) as exc_info:
            service.check_api(api)
        assert exc_info.value.code is StatusCode.UNIMPLEMENTED
        assert "'v1'" in exc_info.value.message
        assert f"'{api}'" in exc_info.value.message

    def test_checked_before_any_io(self, pool, monkeypatch):
        def no_connection():
            raise AssertionError("connection acquired before version check")

        monkeypatch.setattr(pool, "connect", no_connection)
        service = TodoService(pool)
        with pytest.raises(UnsupportedVersionError):
            service.read(ReadRequest(api="v2", id=1))
        with pytest.raises(UnsupportedVersionError):
            service.read_all(ReadAllRequest(api="v0"))


class TestCrudScenario:
    def test_buy_milk_lifecycle(self, service):
        created = service.create(CreateRequest(api="v1", todo=make_todo(title="buy milk", description="", reminder=T0)))
        assert created.api == "v1"
        assert created.id == 1

        read = service.read(ReadRequest(api="v1", id=1))
        assert read.api == "v1"
        assert read.todo.id == 1
        assert read.todo.title == "buy milk"
        assert read.todo.description == ""
        assert read.todo.reminder == T0

        updated = service.update(UpdateRequest(api="v1", todo=make_todo(title="buy milk 2%", todo_id=1)))
        assert updated.api == "v1"
        assert updated.updated == 1
        assert service.read(ReadRequest(id=1)).todo.title == "buy milk 2%"

        deleted = service.delete(DeleteRequest(api="v1", id=1))
        assert deleted.api == "v1"
        assert deleted.deleted == 1

        with pytest.raises(TodoNotFoundError) as exc_info:
            service.read(ReadRequest(api="v1", id=1))
        assert exc_info.value.code is StatusCode.NOT_FOUND
        assert exc_info.value.message == "Todo with ID='1' is not found"

    def test_round_trip_keeps_fields(self, service):
        reminder = Timestamp(seconds=1767225599, nanos=123456000)
        todo_id = create(service, title="file taxes", description="before the deadline", reminder=reminder)
        todo = service.read(ReadRequest(id=todo_id)).todo
        assert (todo.title, todo.description, todo.reminder) == ("file taxes", "before the deadline", reminder)

    def test_empty_api_uses_current_version(self, service):
        response = service.create(CreateRequest(api="", todo=make_todo()))
        assert response.api == "v1"

    def test_ids_are_assigned_by_store(self, service):
        first = create(service, title="a")
        second = create(service, title="b")
        assert second != first


class TestNotFound:
    def test_never_created(self, service):
        with pytest.raises(TodoNotFoundError):
            service.read(ReadRequest(api="v1", id=999))
        with pytest.raises(TodoNotFoundError):
            service.update(UpdateRequest(api="v1", todo=make_todo(todo_id=999)))
        with pytest.raises(TodoNotFoundError):
            service.delete(DeleteRequest(api="v1", id=999))

    def test_delete_twice(self, service):
        todo_id = create(service)
        assert service.delete(DeleteRequest(id=todo_id)).deleted == 1
        with pytest.raises(TodoNotFoundError) as exc_info:
            service.delete(DeleteRequest(id=todo_id))
        assert exc_info.value.todo_id == todo_id

    def test_update_after_delete(self, service):
        todo_id = create(service)
        service.delete(DeleteRequest(id=todo_id))
        with pytest.raises(TodoNotFoundError):
            service.update(UpdateRequest(todo=make_todo(todo_id=todo_id)))


class TestUpdate:
    def test_only_target_row_changes(self, service):
        target = create(service, title="target", description="old", reminder=T0)
        other = create(service, title="other", description="untouched", reminder=reminder_at(2030, 5, 1, 8))

        new_reminder = reminder_at(2026, 3, 14, 15, 9, 26)
        service.update(
            UpdateRequest(todo=make_todo(title="target v2", description="new", reminder=new_reminder, todo_id=target))
        )

        changed = service.read(ReadRequest(id=target)).todo
        assert (changed.title, changed.description, changed.reminder) == ("target v2", "new", new_reminder)
        untouched = service.read(ReadRequest(id=other)).todo
        assert (untouched.title, untouched.description, untouched.reminder) == (
            "other",
            "untouched",
            reminder_at(2030, 5, 1, 8),
        )

    def test_malformed_reminder_leaves_row(self, service):
        todo_id = create(service, title="keep me")
        with pytest.raises(InvalidReminderError):
            service.update(UpdateRequest(todo=make_todo(title="changed", reminder=Timestamp(nanos=-5), todo_id=todo_id)))
        assert service.read(ReadRequest(id=todo_id)).todo.title == "keep me"


class TestCreateValidation:
    @pytest.mark.parametrize(
        "reminder",
        [None, Timestamp(seconds=0, nanos=1_000_000_000), Timestamp(seconds=253402300800)],
    )
    def test_malformed_reminder_persists_nothing(self, service, pool, reminder):
        with pytest.raises(InvalidReminderError) as exc_info:
            service.create(CreateRequest(api="v1", todo=make_todo(reminder=reminder)))
        assert exc_info.value.code is StatusCode.INVALID_ARGUMENT
        assert exc_info.value.message.startswith("reminder field has invalid format-> ")
        assert count_rows(pool) == 0


class TestReadAll:
    def test_empty(self, service):
        response = service.read_all(ReadAllRequest(api="v1"))
        assert response.api == "v1"
        assert response.todos == []

    def test_returns_stored_set(self, service):
        ids = {create(service, title=f"task {i}") for i in range(4)}
        service.delete(DeleteRequest(id=min(ids)))
        todos = service.read_all(ReadAllRequest()).todos
        assert {t.id for t in todos} == ids - {min(ids)}
        assert all(t.reminder == T0 for t in todos)

    def test_conversion_failure_aborts_call(self, service, pool):
        create(service, title="good")
        with pool.connect() as conn:
            conn.execute(insert(todo_table).values(title="no reminder", description="", reminder=None))
        with pytest.raises(StoreFailureError) as exc_info:
            service.read_all(ReadAllRequest())
        assert exc_info.value.code is StatusCode.UNKNOWN
        assert exc_info.value.message.startswith("reminder field has invalid format-> ")
        assert pool.engine.pool.checkedout() == 0


class TestReadByTitle:
    def test_substring_match(self, service):
        create(service, title="buy milk")
        create(service, title="buy bread")
        create(service, title="walk the dog")
        titles = {t.title for t in service.read_by_title(ReadByTitleRequest(api="v1", title="buy")).todos}
        assert titles == {"buy milk", "buy bread"}

    def test_no_match_is_empty_list(self, service):
        create(service, title="buy milk")
        assert service.read_by_title(ReadByTitleRequest(title="zzz")).todos == []

    def test_empty_title_matches_everything(self, service):
        create(service, title="a")
        create(service, title="b")
        assert len(service.read_by_title(ReadByTitleRequest(title="")).todos) == 2

    def test_wildcards_match_literally(self, service):
        create(service, title="save 100% effort")
        create(service, title="save 100 coins")
        create(service, title="snake_case rename")
        create(service, title="snakeXcase rename")

        percent = service.read_by_title(ReadByTitleRequest(title="100%")).todos
        assert [t.title for t in percent] == ["save 100% effort"]
        underscore = service.read_by_title(ReadByTitleRequest(title="snake_case")).todos
        assert [t.title for t in underscore] == ["snake_case rename"]


class TestStoreFailures:
    def test_missing_table(self, db_path):
        pool = ConnectionPool(f"sqlite:///{db_path.parent / 'empty.db'}")
        service = TodoService(pool)
        try:
            with pytest.raises(StoreFailureError) as exc_info:
                service.create(CreateRequest(todo=make_todo()))
            assert exc_info.value.message.startswith("failed to insert into todo-> ")
            with pytest.raises(StoreFailureError) as exc_info:
                service.read(ReadRequest(id=1))
            assert exc_info.value.message.startswith("failed to select from todo-> ")
            with pytest.raises(StoreFailureError):
                service.read_all(ReadAllRequest())
            with pytest.raises(StoreFailureError):
                service.update(UpdateRequest(todo=make_todo(todo_id=1)))
            with pytest.raises(StoreFailureError):
                service.delete(DeleteRequest(id=1))
        finally:
            pool.dispose()

    def test_connection_failure(self, pool, service, monkeypatch):
        def refuse():
            raise OperationalError("connect", {}, Exception("connection refused"))

        monkeypatch.setattr(pool.engine, "connect", refuse)
        with pytest.raises(StoreFailureError) as exc_info:
            service.read(ReadRequest(id=1))
        assert exc_info.value.code is StatusCode.UNKNOWN
        assert exc_info.value.message.startswith("failed to connect to database-> ")
        assert "connection refused" in exc_info.value.message

    def test_duplicate_id_is_invariant_violation(self, db_path):
        pool = ConnectionPool(f"sqlite:///{db_path.parent / 'nopk.db'}")
        try:
            with pool.connect() as conn:
                conn.execute(
                    text("CREATE TABLE todo (id INTEGER, title VARCHAR(200), description VARCHAR(1024), reminder DATETIME)")
                )
                for title in ("first", "second"):
                    conn.execute(
                        insert(todo_table).values(id=5, title=title, description="", reminder=datetime(2025, 1, 1))
                    )
            with pytest.raises(InvariantViolationError) as exc_info:
                TodoService(pool).read(ReadRequest(id=5))
            assert exc_info.value.code is StatusCode.UNKNOWN
            assert exc_info.value.message == "found multiple Todo rows with ID='5'"
        finally:
            pool.dispose()

    def test_unparseable_stored_reminder(self, service, pool):
        with pool.connect() as conn:
            conn.execute(text("INSERT INTO todo (id, title, description, reminder) VALUES (1, 'x', '', 'garbage')"))
        with pytest.raises(StoreFailureError) as exc_info:
            service.read(ReadRequest(id=1))
        assert exc_info.value.code is StatusCode.UNKNOWN
        assert pool.engine.pool.checkedout() == 0


class TestConnectionPool:
    def test_connection_released_on_error(self, pool, service):
        with pytest.raises(TodoNotFoundError):
            service.read(ReadRequest(id=42))
        assert pool.engine.pool.checkedout() == 0

    def test_connection_released_after_iteration(self, pool, service):
        create(service)
        service.read_all(ReadAllRequest())
        assert pool.engine.pool.checkedout() == 0

    def test_connection_released_when_block_raises(self, pool):
        with pytest.raises(RuntimeError):
            with pool.connect() as conn:
                conn.execute(text("SELECT 1"))
                raise RuntimeError("interrupted")
        assert pool.engine.pool.checkedout() == 0

    def test_health_check(self, pool):
        assert pool.health_check() is True

    def test_create_schema_is_idempotent(self, pool):
        pool.create_schema()
        assert count_rows(pool) == 0

    def test_in_memory_database_is_shared(self):
        pool = ConnectionPool("sqlite://")
        try:
            pool.create_schema()
            service = TodoService(pool)
            todo_id = create(service)
            assert service.read(ReadRequest(id=todo_id)).todo.title == "buy milk"
        finally:
            pool.dispose()
