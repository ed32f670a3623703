from __future__ import annotations

from fastapi import Request

from todo_api.observability.middleware import RequestContext
from todo_api.observability.telemetry import Telemetry
from todo_api.services.todo_store import TodoStore


def get_store(request: Request) -> TodoStore:
    return request.app.state.todo_store


def get_telemetry(request: Request) -> Telemetry:
    return request.app.state.telemetry


def get_request_context(request: Request) -> RequestContext:
    return getattr(request.state, "request_context", None) or RequestContext()
