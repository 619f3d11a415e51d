from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..schemas import (
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
    UpdateRequest,
    UpdateResponse,
)
from ..service import TodoService, get_service

router = APIRouter(
    prefix="/v1/TodoService",
    tags=["todo-service"],
)

_ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"description": "INVALID_ARGUMENT: malformed request or reminder"},
    500: {"description": "UNKNOWN: database failure"},
    501: {"description": "UNIMPLEMENTED: unsupported API version"},
}
_NOT_FOUND: Dict[int | str, Dict[str, Any]] = {404: {"description": "NOT_FOUND: no todo with this id"}}


def _get_service(service: TodoService = Depends(get_service)) -> TodoService:
    """
    Dependency wrapper for the service to keep signatures clean.
    """
    return service


# PUBLIC_INTERFACE
@router.post(
    "/Create",
    response_model=CreateResponse,
    summary="Create",
    description="Create a new todo task and return its identifier.",
    responses=_ERROR_RESPONSES,
)
def create(payload: CreateRequest, service: TodoService = Depends(_get_service)) -> CreateResponse:
    """Create new todo task."""
    return service.create(payload)


# PUBLIC_INTERFACE
@router.post(
    "/Read",
    response_model=ReadResponse,
    summary="Read",
    description="Read a todo task by id.",
    responses={**_ERROR_RESPONSES, **_NOT_FOUND},
)
def read(payload: ReadRequest, service: TodoService = Depends(_get_service)) -> ReadResponse:
    return service.read(payload)


# PUBLIC_INTERFACE
@router.post(
    "/Update",
    response_model=UpdateResponse,
    summary="Update",
    description="Replace title, description and reminder of the todo task with the given id.",
    responses={**_ERROR_RESPONSES, **_NOT_FOUND},
)
def update(payload: UpdateRequest, service: TodoService = Depends(_get_service)) -> UpdateResponse:
    return service.update(payload)


# PUBLIC_INTERFACE
@router.post(
    "/Delete",
    response_model=DeleteResponse,
    summary="Delete",
    description="Delete a todo task by id.",
    responses={**_ERROR_RESPONSES, **_NOT_FOUND},
)
def delete(payload: DeleteRequest, service: TodoService = Depends(_get_service)) -> DeleteResponse:
    return service.delete(payload)


# PUBLIC_INTERFACE
@router.post(
    "/ReadAll",
    response_model=ReadAllResponse,
    summary="Read all",
    description="Read every stored todo task. No ordering is guaranteed.",
    responses=_ERROR_RESPONSES,
)
def read_all(payload: ReadAllRequest, service: TodoService = Depends(_get_service)) -> ReadAllResponse:
    return service.read_all(payload)


# PUBLIC_INTERFACE
@router.post(
    "/ReadByTitle",
    response_model=ReadByTitleResponse,
    summary="Read by title",
    description="Read every todo task whose title contains the given text.",
    responses=_ERROR_RESPONSES,
)
def read_by_title(payload: ReadByTitleRequest, service: TodoService = Depends(_get_service)) -> ReadByTitleResponse:
    return service.read_by_title(payload)
