"""
Todo RPC service package.

Exposes the todo service over FastAPI (src/todo_rpc/main.py) on top of a
pooled SQLAlchemy connection (src/todo_rpc/db.py). The FastAPI app is
importable as todo_rpc.main.app.
"""

from .schemas import API_VERSION  # noqa: F401
