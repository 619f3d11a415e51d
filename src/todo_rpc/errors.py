"""
Typed failures raised by the todo service.

Every error carries an RPC status code and the HTTP status the transport
answers with. Messages keep the underlying store error text after a '-> '
separator so callers can diagnose store problems.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, Optional, Type


class StatusCode(str, Enum):
    """RPC status kinds exposed to callers."""

    UNIMPLEMENTED = "UNIMPLEMENTED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"


_HTTP_STATUS: Dict[StatusCode, int] = {
    StatusCode.UNIMPLEMENTED: 501,
    StatusCode.INVALID_ARGUMENT: 400,
    StatusCode.NOT_FOUND: 404,
    StatusCode.UNKNOWN: 500,
}


# PUBLIC_INTERFACE
class TodoServiceError(Exception):
    """Base exception for every failure surfaced by the todo service."""

    code: StatusCode = StatusCode.UNKNOWN

    def __init__(self, message: str, code: Optional[StatusCode] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.code]

    def to_response(self) -> Dict[str, Any]:
        """Convert to the JSON error envelope returned by the transport."""
        return {"error": {"code": self.code.value, "message": self.message}}

    @classmethod
    def from_message(cls, message: str) -> "TodoServiceError":
        """Rebuild the error from the message carried by a wire envelope."""
        return cls(message)


_VERSION_MESSAGE = re.compile(r"implements API version '(.*)', but asked for '(.*)'$")
_TODO_ID = re.compile(r"ID='(-?\d+)'")


class UnsupportedVersionError(TodoServiceError):
    """Client asked for an API version this service does not implement."""

    code = StatusCode.UNIMPLEMENTED

    def __init__(self, supported: str, requested: str, message: Optional[str] = None) -> None:
        if message is None:
            message = (
                f"unsupported API version: service implements API version '{supported}', "
                f"but asked for '{requested}'"
            )
        super().__init__(message)
        self.supported = supported
        self.requested = requested

    @classmethod
    def from_message(cls, message: str) -> "UnsupportedVersionError":
        match = _VERSION_MESSAGE.search(message)
        supported, requested = match.groups() if match else ("", "")
        return cls(supported, requested, message=message)


class InvalidArgumentError(TodoServiceError):
    """Request message could not be decoded."""

    code = StatusCode.INVALID_ARGUMENT


class InvalidReminderError(InvalidArgumentError):
    """Reminder timestamp on a write request is malformed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"reminder field has invalid format-> {reason}")


class TodoNotFoundError(TodoServiceError):
    code = StatusCode.NOT_FOUND

    def __init__(self, todo_id: Optional[int], message: Optional[str] = None) -> None:
        super().__init__(message if message is not None else f"Todo with ID='{todo_id}' is not found")
        self.todo_id = todo_id

    @classmethod
    def from_message(cls, message: str) -> "TodoNotFoundError":
        match = _TODO_ID.search(message)
        return cls(int(match.group(1)) if match else None, message=message)


class StoreFailureError(TodoServiceError):
    """Connection, statement, row-scan or reconstruction failure in the store."""

    code = StatusCode.UNKNOWN

    def __init__(self, context: str, cause: Any, message: Optional[str] = None) -> None:
        super().__init__(message if message is not None else f"{context}-> {cause}")
        self.context = context

    @classmethod
    def from_message(cls, message: str) -> "StoreFailureError":
        context, _, cause = message.partition("-> ")
        return cls(context, cause, message=message)


class InvariantViolationError(TodoServiceError):
    """Stored data breaks an invariant, e.g. several rows share one id."""

    code = StatusCode.UNKNOWN


_BY_CODE: Dict[StatusCode, Type[TodoServiceError]] = {
    StatusCode.UNIMPLEMENTED: UnsupportedVersionError,
    StatusCode.INVALID_ARGUMENT: InvalidArgumentError,
    StatusCode.NOT_FOUND: TodoNotFoundError,
    StatusCode.UNKNOWN: StoreFailureError,
}


# PUBLIC_INTERFACE
def error_from_response(payload: Any, http_status: int) -> TodoServiceError:
    """
    Rebuild a TodoServiceError from an error envelope received over the wire.

    The status code selects the subclass: UNIMPLEMENTED -> UnsupportedVersionError,
    INVALID_ARGUMENT -> InvalidArgumentError, NOT_FOUND -> TodoNotFoundError,
    UNKNOWN -> StoreFailureError. Unknown or missing codes map to UNKNOWN; a
    body without an envelope gives a plain UNKNOWN TodoServiceError.
    """
    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return TodoServiceError(f"unexpected response with HTTP status {http_status}", StatusCode.UNKNOWN)

    try:
        code = StatusCode(error.get("code"))
    except ValueError:
        code = StatusCode.UNKNOWN
    message = str(error.get("message") or "")
    return _BY_CODE[code].from_message(message)
