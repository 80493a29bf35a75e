from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping

from .models import TodoEntity


# PUBLIC_INTERFACE
def utc_now_iso() -> str:
    """
    Return the current UTC time as a fixed-width ISO8601 string.

    The format (``2025-01-31T13:45:00.123456Z``) is always the same width, so
    plain string comparison orders timestamps chronologically.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# PUBLIC_INTERFACE
def normalize_todo(item: Mapping[str, Any]) -> TodoEntity:
    """
    Build the response shape for a record read from the store.

    Records written out of band may lack fields, so missing values are filled
    in instead of failing the request:
    - title -> ""
    - completed -> False
    - createdAt -> current time

    updatedAt is only carried over when the record has one. Attributes outside
    the todo schema are dropped.

    Args:
        item: Raw record as returned by a repository.

    Returns:
        A TodoEntity dict.
    """
    title = item.get("title")
    todo: TodoEntity = {
        "id": str(item["id"]),
        "title": "" if title is None else str(title),
        "completed": bool(item.get("completed", False)),
        "createdAt": str(item.get("createdAt") or utc_now_iso()),
    }
    if item.get("updatedAt"):
        todo["updatedAt"] = str(item["updatedAt"])
    return todo


# PUBLIC_INTERFACE
def sort_by_created_at(todos: Iterable[TodoEntity]) -> List[TodoEntity]:
    """Return todos ordered oldest first; ties keep their scan order."""
    return sorted(todos, key=lambda t: t["createdAt"])


# PUBLIC_INTERFACE
def error_envelope(message: str) -> Dict[str, Any]:
    """Standard failure body: ``{"success": false, "error": message}``."""
    return {"success": False, "error": message}
