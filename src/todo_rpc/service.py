from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from .db import ConnectionPool
from .errors import (
    InvalidReminderError,
    InvariantViolationError,
    StoreFailureError,
    TodoNotFoundError,
    UnsupportedVersionError,
)
from .models import todo_table
from .schemas import (
    API_VERSION,
    CreateRequest,
    CreateResponse,
    DeleteRequest,
    DeleteResponse,
    ReadAllRequest,
    ReadAllResponse,
    ReadByTitleRequest,
    ReadByTitleResponse,
    ReadRequest,
    ReadResponse,
    Timestamp,
    Todo,
    UpdateRequest,
    UpdateResponse,
)
from .settings import get_settings
from .timestamps import InvalidTimestampError, datetime_to_timestamp, timestamp_to_datetime, to_naive_utc

logger = logging.getLogger(__name__)

_COLUMNS = (todo_table.c.id, todo_table.c.title, todo_table.c.description, todo_table.c.reminder)


# PUBLIC_INTERFACE
class TodoService:
    """
    Todo request handler.

    Each method validates the requested API version, checks out one pooled
    connection, runs exactly one statement and maps the outcome to a response
    message or a TodoServiceError. No state is kept between calls, so a
    single instance serves concurrent requests.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    def check_api(self, api: str) -> None:
        """
        Ensure the API version requested by the client is supported.

        An empty version means "use the current version".

        Raises:
            UnsupportedVersionError: if api is set and differs from API_VERSION.
        """
        if api and api != API_VERSION:
            raise UnsupportedVersionError(API_VERSION, api)

    def create(self, req: CreateRequest) -> CreateResponse:
        self.check_api(req.api)
        reminder = _parse_reminder(req.todo.reminder)

        with self._pool.connect() as conn:
            try:
                result = conn.execute(
                    insert(todo_table).values(
                        title=req.todo.title,
                        description=req.todo.description,
                        reminder=reminder,
                    )
                )
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to insert into todo", e) from e

            try:
                primary_key = result.inserted_primary_key
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to retrieve id for created Todo", e) from e
            if not primary_key or primary_key[0] is None:
                raise StoreFailureError("failed to retrieve id for created Todo", "store returned no identifier")
            new_id = int(primary_key[0])

        logger.info("created todo %d", new_id, extra={"rpc_method": "Create", "todo_id": new_id})
        return CreateResponse(api=API_VERSION, id=new_id)

    def read(self, req: ReadRequest) -> ReadResponse:
        self.check_api(req.api)

        with self._pool.connect() as conn:
            try:
                result = conn.execute(select(*_COLUMNS).where(todo_table.c.id == req.id))
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to select from todo", e) from e
            try:
                # Two rows are enough to detect a duplicate id
                rows = result.fetchmany(2)
            except (SQLAlchemyError, ValueError) as e:
                raise StoreFailureError("failed to retrieve data from todo", e) from e
            finally:
                result.close()

        if not rows:
            raise TodoNotFoundError(req.id)
        if len(rows) > 1:
            raise InvariantViolationError(f"found multiple Todo rows with ID='{req.id}'")
        return ReadResponse(api=API_VERSION, todo=_row_to_todo(rows[0]))

    def update(self, req: UpdateRequest) -> UpdateResponse:
        self.check_api(req.api)
        reminder = _parse_reminder(req.todo.reminder)

        with self._pool.connect() as conn:
            try:
                result = conn.execute(
                    update(todo_table)
                    .where(todo_table.c.id == req.todo.id)
                    .values(
                        title=req.todo.title,
                        description=req.todo.description,
                        reminder=reminder,
                    )
                )
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to update Todo", e) from e
            updated = _rows_affected(result)

        if updated == 0:
            raise TodoNotFoundError(req.todo.id)
        logger.info("updated todo %d", req.todo.id, extra={"rpc_method": "Update", "todo_id": req.todo.id})
        return UpdateResponse(api=API_VERSION, updated=updated)

    def delete(self, req: DeleteRequest) -> DeleteResponse:
        self.check_api(req.api)

        with self._pool.connect() as conn:
            try:
                result = conn.execute(delete(todo_table).where(todo_table.c.id == req.id))
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to delete Todo", e) from e
            deleted = _rows_affected(result)

        if deleted == 0:
            raise TodoNotFoundError(req.id)
        logger.info("deleted todo %d", req.id, extra={"rpc_method": "Delete", "todo_id": req.id})
        return DeleteResponse(api=API_VERSION, deleted=deleted)

    def read_all(self, req: ReadAllRequest) -> ReadAllResponse:
        self.check_api(req.api)
        return ReadAllResponse(api=API_VERSION, todos=self._select_todos())

    def read_by_title(self, req: ReadByTitleRequest) -> ReadByTitleResponse:
        """
        Return every todo whose title contains req.title.

        Wildcards in req.title ('%', '_') are escaped, so the value always
        matches as a literal substring. Case sensitivity follows the store's
        collation.
        """
        self.check_api(req.api)
        todos = self._select_todos(todo_table.c.title.contains(req.title, autoescape=True))
        return ReadByTitleResponse(api=API_VERSION, todos=todos)

    def _select_todos(self, where: Optional[ColumnElement[bool]] = None) -> List[Todo]:
        stmt = select(*_COLUMNS)
        if where is not None:
            stmt = stmt.where(where)

        todos: List[Todo] = []
        with self._pool.connect() as conn:
            try:
                result = conn.execute(stmt)
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to select from Todo", e) from e
            try:
                for row in result:
                    todos.append(_row_to_todo(row))
            except (SQLAlchemyError, ValueError) as e:
                raise StoreFailureError("failed to retrieve data from Todo", e) from e
            finally:
                result.close()
        return todos


def _parse_reminder(reminder: Optional[Timestamp]) -> datetime:
    try:
        return to_naive_utc(timestamp_to_datetime(reminder))
    except InvalidTimestampError as e:
        raise InvalidReminderError(str(e)) from e


def _row_to_todo(row: Row[Any]) -> Todo:
    try:
        todo_id, title, description, stored = row.id, row.title, row.description, row.reminder
    except (SQLAlchemyError, ValueError) as e:
        raise StoreFailureError("failed to retrieve field values from Todo row", e) from e
    try:
        reminder = datetime_to_timestamp(stored)
    except InvalidTimestampError as e:
        raise StoreFailureError("reminder field has invalid format", e) from e
    return Todo(id=todo_id, title=title or "", description=description or "", reminder=reminder)


def _rows_affected(result: Any) -> int:
    try:
        return int(result.rowcount)
    except (SQLAlchemyError, TypeError) as e:
        raise StoreFailureError("failed to retrieve rows affected value", e) from e


# PUBLIC_INTERFACE
@lru_cache
def get_service() -> TodoService:
    """
    Return the process-wide TodoService built from settings.

    The first call creates the connection pool and the todo table if it is
    missing.
    """
    pool = ConnectionPool.from_settings(get_settings())
    pool.create_schema()
    return TodoService(pool)
