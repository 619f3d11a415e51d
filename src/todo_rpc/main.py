from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import StatusCode, TodoServiceError
from .observability import setup_logging
from .routers import todo_service as todo_service_router
from .schemas import API_VERSION
from .service import TodoService, get_service
from .settings import get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todo-service",
        "description": "Todo RPC methods: Create, Read, Update, Delete, ReadAll and ReadByTitle.",
    },
]

_settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup/shutdown lifecycle."""
    setup_logging(_settings.log_level, _settings.log_format)
    # Honors dependency overrides so tests can inject their own service
    service: TodoService = app.dependency_overrides.get(get_service, get_service)()
    logger.info("todo service started, API version %s", API_VERSION)
    yield
    service.pool.dispose()
    logger.info("todo service shutting down")


app = FastAPI(
    title="Todo Service",
    description="Remote procedure interface for managing todo tasks stored in a relational database.",
    version="1.0.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TodoServiceError)
async def todo_service_error_handler(request: Request, exc: TodoServiceError) -> JSONResponse:
    """
    Return the error envelope for failures raised by the service.

    Response format:
        {"error": {"code": "NOT_FOUND", "message": "Todo with ID='7' is not found"}}
    """
    extra = {"error_code": exc.code.value, "path": request.url.path}
    if exc.code is StatusCode.UNKNOWN:
        logger.error("todo service failure: %s", exc.message, extra=extra)
    else:
        logger.warning("todo service rejected request: %s", exc.message, extra=extra)
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report undecodable request messages as INVALID_ARGUMENT.

    Response format:
        {
            "error": {
                "code": "INVALID_ARGUMENT",
                "message": "Request validation failed",
                "details": [... pydantic/fastapi error details ...]
            }
        }
    """
    logger.warning("request validation failed on %s", request.url.path, extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": StatusCode.INVALID_ARGUMENT.value,
                "message": "Request validation failed",
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                        "type": e["type"],
                    }
                    for e in exc.errors()
                ],
            }
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all; internal details stay in the log."""
    logger.error("unhandled exception on %s", request.url.path, exc_info=exc, extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": StatusCode.UNKNOWN.value, "message": "An unexpected error occurred"}},
    )


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check(service: TodoService = Depends(get_service)):
    """
    Health check endpoint.

    Returns:
        A JSON object with the served API version and database reachability.
    """
    database = "ok" if service.pool.health_check() else "unavailable"
    return {"message": "Healthy", "api": API_VERSION, "database": database}


app.include_router(todo_service_router.router)
