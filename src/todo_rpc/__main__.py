"""
Run the todo service.

Usage:
    python -m todo_rpc

Bind address comes from HOST / PORT (see settings.py).
"""
import uvicorn

from .settings import get_settings


def main() -> None:
    settings = get_settings()
    # Logging is configured by the app lifespan; keep uvicorn from installing its own config
    uvicorn.run("todo_rpc.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
