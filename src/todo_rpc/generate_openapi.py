"""
Utility script to generate and write the OpenAPI schema for the todo service.

This script imports the FastAPI application instance and serializes its OpenAPI
schema to the interfaces/openapi.json file so that API clients and documentation
tools can consume a stable contract without running the server.

Usage:
    python -m todo_rpc.generate_openapi [output_dir]

Notes:
- The script ensures the 'todo-service' tag is present in the OpenAPI tags metadata.
- Default output directory is ./interfaces relative to the working directory.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .main import app, openapi_tags

logger = logging.getLogger(__name__)


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains the expected tags metadata. Existing
    tag definitions are kept as they are.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def generate_openapi(out_dir: Optional[str] = None) -> str:
    """Write the OpenAPI schema to <out_dir>/openapi.json and return the written file path."""
    schema = app.openapi()
    _ensure_tags(schema)

    interfaces_dir = out_dir or os.path.join(os.getcwd(), "interfaces")
    os.makedirs(interfaces_dir, exist_ok=True)
    out_path = os.path.join(interfaces_dir, "openapi.json")

    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    logger.info("wrote OpenAPI schema to %s", out_path)
    return out_path


def main() -> None:
    out_path = generate_openapi(sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"Wrote OpenAPI schema to: {out_path}")


if __name__ == "__main__":
    main()
