from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

API_VERSION = "v1"

# Wire integer ranges; out-of-range values fail request decoding
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1
INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1


# PUBLIC_INTERFACE
class Timestamp(BaseModel):
    """
    Point in time as seconds and nanoseconds since the Unix epoch, in UTC.

    Decoding only enforces the int64/int32 field widths. Calendar range and
    nanos checks happen when the value is converted (see timestamps.py), so
    a malformed reminder reaches the service and is reported with the
    reminder error message.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"seconds": 1735689600, "nanos": 0}})

    seconds: int = Field(default=0, ge=INT64_MIN, le=INT64_MAX, description="Seconds since 1970-01-01T00:00:00Z")
    nanos: int = Field(default=0, ge=INT32_MIN, le=INT32_MAX, description="Non-negative fraction of a second in nanoseconds (0..999,999,999)")


# PUBLIC_INTERFACE
class Todo(BaseModel):
    """
    Todo task as carried on the wire.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "buy milk",
                "description": "2% please",
                "reminder": {"seconds": 1735689600, "nanos": 0},
            }
        }
    )

    id: int = Field(default=0, ge=INT64_MIN, le=INT64_MAX, description="Unique identifier assigned by the store")
    title: str = Field(default="", description="Short title of the task")
    description: str = Field(default="", description="Free text detail")
    reminder: Optional[Timestamp] = Field(default=None, description="Date and time to remind about the task")


class CreateRequest(BaseModel):
    api: str = Field(default="", description="API version requested by the client; empty means current")
    todo: Todo = Field(default_factory=Todo, description="Task to add; id is ignored")


class CreateResponse(BaseModel):
    api: str = API_VERSION
    id: int = Field(..., description="Identifier of the created task")


class ReadRequest(BaseModel):
    api: str = ""
    id: int = Field(default=0, ge=INT64_MIN, le=INT64_MAX, description="Identifier of the task to read")


class ReadResponse(BaseModel):
    api: str = API_VERSION
    todo: Todo


class UpdateRequest(BaseModel):
    api: str = ""
    todo: Todo = Field(default_factory=Todo, description="Task with the new field values, keyed by id")


class UpdateResponse(BaseModel):
    api: str = API_VERSION
    updated: int = Field(..., description="Number of updated rows; 1 on success")


class DeleteRequest(BaseModel):
    api: str = ""
    id: int = Field(default=0, ge=INT64_MIN, le=INT64_MAX, description="Identifier of the task to delete")


class DeleteResponse(BaseModel):
    api: str = API_VERSION
    deleted: int = Field(..., description="Number of deleted rows; 1 on success")


class ReadAllRequest(BaseModel):
    api: str = ""


class ReadAllResponse(BaseModel):
    api: str = API_VERSION
    todos: List[Todo] = Field(default_factory=list)


class ReadByTitleRequest(BaseModel):
    api: str = ""
    title: str = Field(default="", description="Substring the task title must contain")


class ReadByTitleResponse(BaseModel):
    api: str = API_VERSION
    todos: List[Todo] = Field(default_factory=list)
