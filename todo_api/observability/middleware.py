from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable

import structlog

from todo_api.observability.metrics import TodoMetrics


AWS_REQUEST_ID = "aws_request_id"
GROUP_ID = "group_id"


@dataclass(frozen=True)
class RequestContext:
    """Correlation fields extracted for one request."""

    fields: dict[str, str] = field(default_factory=dict)

    @property
    def aws_request_id(self) -> str | None:
        return self.fields.get(AWS_REQUEST_ID)

    @property
    def group_id(self) -> str | None:
        return self.fields.get(GROUP_ID)


def _aws_request_id(scope: dict[str, Any]) -> str | None:
    # Mangum hands the Lambda context object through the ASGI scope.
    context = scope.get("aws.context")
    request_id = getattr(context, "aws_request_id", None)
    return str(request_id) if request_id else None


def _header(scope: dict[str, Any], name: bytes) -> str | None:
    for key, value in scope.get("headers") or ():
        if key.lower() == name:
            decoded = value.decode("latin-1").strip()
            return decoded or None
    return None


class RequestContextMiddleware:
    """Binds per-request correlation fields into structlog, plus access logs and HTTP metrics.

    Fields are bound with ``bound_contextvars`` so they are visible to every log
    call made while the request is processed and are restored when it ends,
    whether it ends normally or with an exception. contextvars are scoped to
    the asyncio task (and copied into threadpool workers), so concurrent
    requests never observe each other's fields.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        group_id_header: str = "x-group-id",
        metrics: TodoMetrics | None = None,
    ) -> None:
        self.app = app
        self._group_id_header = group_id_header.lower().encode("latin-1")
        self._metrics = metrics

    def extract(self, scope: dict[str, Any]) -> RequestContext:
        fields: dict[str, str] = {}

        request_id = _aws_request_id(scope)
        if request_id:
            fields[AWS_REQUEST_ID] = request_id

        group_id = _header(scope, self._group_id_header)
        if group_id:
            fields[GROUP_ID] = group_id

        return RequestContext(fields=fields)

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        context = self.extract(scope)
        scope.setdefault("state", {})["request_context"] = context

        if not context.fields:
            await self._observe(scope, receive, send)
            return

        with structlog.contextvars.bound_contextvars(**context.fields):
            await self._observe(scope, receive, send)

    async def _observe(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        path = scope.get("path")
        method = scope.get("method")
        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0

            # Update metrics first so they update even if logging misbehaves.
            if self._metrics is not None:
                self._metrics.observe_http_request(elapsed_ms, method=method, status_code=status_code)

            structlog.get_logger("access").info(
                "http_request",
                path=path,
                method=method,
                status_code=status_code,
                elapsed_ms=round(elapsed_ms, 2),
            )
