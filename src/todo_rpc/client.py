from __future__ import annotations

import logging
from typing import List, Type, TypeVar

import httpx
from pydantic import BaseModel

from .errors import StatusCode, TodoServiceError, error_from_response
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
    Todo,
    UpdateRequest,
    UpdateResponse,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


# PUBLIC_INTERFACE
class TodoServiceClient:
    """
    Client for the todo RPC methods.

    Wraps an httpx.Client whose base_url points at the service (a FastAPI
    TestClient works too). Error envelopes are raised as TodoServiceError
    with the status code sent by the server.

    Usage:
        with httpx.Client(base_url="http://localhost:8080") as http:
            client = TodoServiceClient(http)
            todo_id = client.create(Todo(title="buy milk", reminder=...)).id
    """

    PREFIX = "/v1/TodoService"

    def __init__(self, http: httpx.Client, api: str = API_VERSION) -> None:
        self._http = http
        self.api = api

    def create(self, todo: Todo) -> CreateResponse:
        return self._call("Create", CreateRequest(api=self.api, todo=todo), CreateResponse)

    def read(self, todo_id: int) -> ReadResponse:
        return self._call("Read", ReadRequest(api=self.api, id=todo_id), ReadResponse)

    def update(self, todo: Todo) -> UpdateResponse:
        return self._call("Update", UpdateRequest(api=self.api, todo=todo), UpdateResponse)

    def delete(self, todo_id: int) -> DeleteResponse:
        return self._call("Delete", DeleteRequest(api=self.api, id=todo_id), DeleteResponse)

    def read_all(self) -> List[Todo]:
        return self._call("ReadAll", ReadAllRequest(api=self.api), ReadAllResponse).todos

    def read_by_title(self, title: str) -> List[Todo]:
        return self._call("ReadByTitle", ReadByTitleRequest(api=self.api, title=title), ReadByTitleResponse).todos

    def _call(self, method: str, request: BaseModel, response_type: Type[ResponseT]) -> ResponseT:
        try:
            response = self._http.post(f"{self.PREFIX}/{method}", json=request.model_dump(mode="json"))
        except httpx.HTTPError as e:
            logger.error("%s call failed: %s", method, e, extra={"rpc_method": method})
            raise TodoServiceError(f"failed to call {method}-> {e}", StatusCode.UNKNOWN) from e

        if response.is_success:
            return response_type.model_validate(response.json())

        try:
            payload = response.json()
        except ValueError:
            payload = None
        raise error_from_response(payload, response.status_code)
