from __future__ import annotations

from typing import TypedDict


class _TodoBase(TypedDict):
    id: str
    title: str
    completed: bool
    createdAt: str


# PUBLIC_INTERFACE
class TodoEntity(_TodoBase, total=False):
    """
    A normalized Todo record as returned by the API.

    Fields:
    - id: UUID string assigned at creation; the table's partition key
    - title: Short title as supplied by the client
    - completed: Boolean completion flag
    - createdAt: ISO8601 UTC creation timestamp, never modified
    - updatedAt: ISO8601 UTC timestamp of the last update; absent until the first update
    """

    updatedAt: str
