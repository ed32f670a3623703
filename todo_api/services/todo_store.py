from __future__ import annotations

import uuid
from threading import Lock

from todo_api.models.schemas import TodoItem


class TodoNotFoundError(KeyError):
    """Raised when no item with the requested id exists."""

    def __init__(self, item_id: uuid.UUID) -> None:
        super().__init__(str(item_id))
        self.item_id = item_id


class TodoStore:
    """Thread-safe, process-local todo items (resets on restart).

    Items are copied on the way in and on the way out, so nothing outside the
    store can mutate what it holds.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._items: dict[uuid.UUID, TodoItem] = {}

    def insert(self, item: TodoItem) -> uuid.UUID:
        with self._lock:
            item_id = uuid.uuid4()
            while item_id in self._items:
                item_id = uuid.uuid4()
            self._items[item_id] = item.model_copy(update={"id": item_id})
            return item_id

    def get_all(self) -> list[TodoItem]:
        with self._lock:
            return [item.model_copy() for item in self._items.values()]

    def get(self, item_id: uuid.UUID) -> TodoItem:
        with self._lock:
            item = self._items.get(item_id)
        if item is None:
            raise TodoNotFoundError(item_id)
        return item.model_copy()

    def delete(self, item_id: uuid.UUID) -> None:
        with self._lock:
            if self._items.pop(item_id, None) is None:
                raise TodoNotFoundError(item_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
