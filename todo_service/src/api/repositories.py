from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Dict, List, Optional

from .settings import Settings, get_settings

TodoItem = Dict[str, Any]


class StoreError(Exception):
    """Raised when a call to the backing store fails."""


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract contract for the todo store.

    Records are addressed by their ``id`` partition key. ``put`` is an upsert
    that replaces the whole record. Implementations raise StoreError for any
    failure talking to the store.
    """

    @abstractmethod
    def get(self, todo_id: str) -> Optional[TodoItem]:
        """Return the raw record for todo_id, or None if absent."""

    @abstractmethod
    def put(self, item: TodoItem) -> None:
        """Create or fully overwrite the record keyed by item['id']."""

    @abstractmethod
    def delete(self, todo_id: str) -> None:
        """Delete the record for todo_id. Deleting an absent key is not an error."""

    @abstractmethod
    def scan(self) -> List[TodoItem]:
        """Return every record in the collection, in store order."""

    def initialize(self) -> None:
        """Make sure the backing collection exists. Called once at startup."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository for local development and tests.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, TodoItem] = {}

    def get(self, todo_id: str) -> Optional[TodoItem]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def put(self, item: TodoItem) -> None:
        with self._lock:
            self._items[item["id"]] = dict(item)

    def delete(self, todo_id: str) -> None:
        with self._lock:
            self._items.pop(todo_id, None)

    def scan(self) -> List[TodoItem]:
        with self._lock:
            # Return copies to avoid external mutation
            return [item.copy() for item in self._items.values()]


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Factory returning the configured repository.
    - dynamodb: DynamoDBRepository pointed at settings.dynamodb_endpoint
    - memory: InMemoryRepository
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "memory":
        return InMemoryRepository()

    from .db import DynamoDBRepository

    return DynamoDBRepository.from_settings(settings)
