import os
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

# Keep app import from touching ./data; every test gets its own database below
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")

from todo_rpc.db import ConnectionPool  # noqa: E402
from todo_rpc.main import app  # noqa: E402
from todo_rpc.schemas import Timestamp, Todo  # noqa: E402
from todo_rpc.service import TodoService, get_service  # noqa: E402

# 2025-01-01T00:00:00Z
T0 = Timestamp(seconds=1735689600, nanos=0)


def make_todo(title="buy milk", description="", reminder=T0, todo_id=0) -> Todo:
    return Todo(id=todo_id, title=title, description=description, reminder=reminder)


def reminder_at(year, month, day, hour=0, minute=0, second=0) -> Timestamp:
    dt = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    return Timestamp(seconds=int(dt.timestamp()), nanos=0)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "todos.db"


@pytest.fixture
def pool(db_path):
    pool = ConnectionPool(f"sqlite:///{db_path}")
    pool.create_schema()
    yield pool
    pool.dispose()


@pytest.fixture
def service(pool):
    return TodoService(pool)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
