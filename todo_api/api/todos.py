from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Response, status

from todo_api.models.schemas import TodoItem
from todo_api.observability.telemetry import Telemetry
from todo_api.services.dependencies import get_store, get_telemetry
from todo_api.services.todo_store import TodoNotFoundError, TodoStore

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("", response_model=list[TodoItem])
async def list_todos(store: TodoStore = Depends(get_store)) -> list[TodoItem]:
    return store.get_all()


@router.post("", response_model=TodoItem, status_code=status.HTTP_201_CREATED)
async def create_todo(
    item: TodoItem,
    store: TodoStore = Depends(get_store),
    telemetry: Telemetry = Depends(get_telemetry),
) -> TodoItem:
    with telemetry.tracer.start_as_current_span("new_todo") as span:
        item_id = store.insert(item)
        # Only reference the id once it is queryable from the store.
        span.set_attribute("item_id", str(item_id))

    structlog.get_logger("todo_api.todos").info("todo_created", id=str(item_id))
    telemetry.metrics.record_todo_created()

    return item.model_copy(update={"id": item_id})


@router.get("/{item_id}", response_model=TodoItem)
async def get_todo(item_id: uuid.UUID, store: TodoStore = Depends(get_store)) -> TodoItem | Response:
    try:
        return store.get(item_id)
    except TodoNotFoundError:
        return Response(status_code=status.HTTP_404_NOT_FOUND)


@router.delete("/{item_id}")
async def delete_todo(item_id: uuid.UUID, store: TodoStore = Depends(get_store)) -> Response:
    log = structlog.get_logger("todo_api.todos")
    try:
        store.delete(item_id)
    except TodoNotFoundError:
        log.warning("todo_not_found", id=str(item_id))
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    log.info("todo_deleted", id=str(item_id))
    return Response(status_code=status.HTTP_200_OK)
