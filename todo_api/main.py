from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.responses import PlainTextResponse

from todo_api.api.todos import router as todos_router
from todo_api.config import Settings, get_settings
from todo_api.observability.middleware import RequestContext, RequestContextMiddleware
from todo_api.observability.telemetry import Telemetry
from todo_api.observability.tracing import get_trace_id
from todo_api.services.dependencies import get_request_context
from todo_api.services.todo_store import TodoStore


def create_app(
    settings: Settings | None = None,
    store: TodoStore | None = None,
    telemetry: Telemetry | None = None,
) -> FastAPI:
    """Build the ASGI app shared by every host (uvicorn or Lambda).

    The store and telemetry are owned by the returned app; pass them in to
    share or inspect them, otherwise a fresh store and the global
    OpenTelemetry providers are used.
    """
    settings = settings or get_settings()
    telemetry = telemetry or Telemetry.from_globals()

    app = FastAPI(title="Todo API", version=settings.service_version)
    app.state.settings = settings
    app.state.todo_store = store if store is not None else TodoStore()
    app.state.telemetry = telemetry

    app.add_middleware(
        RequestContextMiddleware,
        group_id_header=settings.group_id_header,
        metrics=telemetry.metrics,
    )
    app.include_router(todos_router)

    @app.get("/welcome", response_class=PlainTextResponse)
    async def welcome(context: RequestContext = Depends(get_request_context)) -> str:
        invocation = context.aws_request_id or "local"
        trace_id = get_trace_id() or "none"
        return (
            f"Welcome to {settings.service_name} ({settings.environment}), "
            f"invocation {invocation}, trace {trace_id}"
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
