"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

The schema is built from an app instance without opening a database, and is
written to interfaces/openapi.json so frontend clients and documentation tools
can consume a stable contract without running the server.

Usage:
    python -m tasks_api.generate_openapi
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from .logging_setup import configure_logging
from .main import create_app, openapi_tags

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = os.path.join("interfaces", "openapi.json")


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema carries every tag in openapi_tags, without
    overriding tags already present.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def build_schema() -> Dict[str, Any]:
    """Return the OpenAPI schema of the application."""
    schema = create_app().openapi()
    _ensure_tags(schema)
    return schema


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """
    Write the OpenAPI schema as pretty-printed JSON, creating directories as
    needed, and return the written file path.
    """
    path = out_path or DEFAULT_OUTPUT
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(build_schema(), f, indent=2, ensure_ascii=False)
    logger.info("Wrote OpenAPI schema to %s", path)
    return path


def main() -> None:
    configure_logging()
    print(f"Wrote OpenAPI schema to: {generate_openapi()}")


if __name__ == "__main__":
    main()
