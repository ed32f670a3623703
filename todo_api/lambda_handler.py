"""
Entrypoint for Lambda execution behind API Gateway.

Mangum translates API Gateway events into ASGI so the FastAPI app runs
unchanged. Each invocation is wrapped in a server span carrying the Lambda
invocation id; handler spans nest under it because Mangum runs the app in a
task that inherits the current context.
"""

from __future__ import annotations

import os
from typing import Any

import structlog
from mangum import Mangum
from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.propagators.aws import AwsXRayPropagator
from opentelemetry.propagators.textmap import Getter
from opentelemetry.trace import SpanKind

from todo_api.config import get_settings
from todo_api.main import create_app
from todo_api.observability.telemetry import Telemetry, init_telemetry


def _carrier(event: dict[str, Any]) -> dict[str, str]:
    headers = event.get("headers") or {}
    return {str(k).lower(): str(v) for k, v in headers.items() if v is not None}


class _HeaderGetter(Getter[dict[str, str]]):
    """Case-insensitive lookups over a lower-cased header dict."""

    def get(self, carrier: dict[str, str], key: str) -> list[str] | None:
        value = carrier.get(key.lower())
        return [value] if value is not None else None

    def keys(self, carrier: dict[str, str]) -> list[str]:
        return list(carrier.keys())


_GETTER = _HeaderGetter()
_XRAY = AwsXRayPropagator()
XRAY_ENV_VAR = "_X_AMZN_TRACE_ID"


def _has_parent(context: Context) -> bool:
    return trace.get_current_span(context).get_span_context().is_valid


def extract_parent_context(event: dict[str, Any]) -> Context:
    """Parent for the invocation span.

    Lambda publishes the X-Ray trace header of the invocation in
    _X_AMZN_TRACE_ID; API Gateway also forwards it as X-Amzn-Trace-Id. W3C
    traceparent (via the global propagator) is the fallback.
    """
    headers = _carrier(event)

    xray_env = os.environ.get(XRAY_ENV_VAR)
    if xray_env:
        context = _XRAY.extract({"x-amzn-trace-id": xray_env}, getter=_GETTER)
        if _has_parent(context):
            return context

    context = _XRAY.extract(headers, getter=_GETTER)
    if _has_parent(context):
        return context

    return propagate.extract(headers, getter=_GETTER)


class LambdaHandler:
    def __init__(self, app: Any, telemetry: Telemetry) -> None:
        self.telemetry = telemetry
        self._mangum = Mangum(app, lifespan="off")
        self._cold_start = True

    def __call__(self, event: dict[str, Any], context: Any) -> dict[str, Any]:
        function_name = getattr(context, "function_name", None) or "lambda"
        attributes: dict[str, Any] = {
            "faas.name": function_name,
            "faas.coldstart": self._cold_start,
        }
        invocation_id = getattr(context, "aws_request_id", None)
        if invocation_id:
            attributes["faas.invocation_id"] = invocation_id
        function_arn = getattr(context, "invoked_function_arn", None)
        if function_arn:
            attributes["cloud.resource_id"] = function_arn

        if self._cold_start:
            structlog.get_logger("todo_api.lambda").info(
                "lambda_cold_start", function_name=function_name, aws_request_id=invocation_id
            )
            self._cold_start = False

        try:
            with self.telemetry.tracer.start_as_current_span(
                function_name,
                context=extract_parent_context(event),
                kind=SpanKind.SERVER,
                attributes=attributes,
            ) as span:
                response = self._mangum(event, context)
                status_code = response.get("statusCode")
                if status_code is not None:
                    span.set_attribute("http.status_code", int(status_code))
                return response
        finally:
            # The execution environment may freeze right after we return.
            self.telemetry.force_flush()


_HANDLER: LambdaHandler | None = None


def get_handler() -> LambdaHandler:
    global _HANDLER
    if _HANDLER is None:
        settings = get_settings()
        telemetry = init_telemetry(settings)
        _HANDLER = LambdaHandler(create_app(settings, telemetry=telemetry), telemetry)
    return _HANDLER


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return get_handler()(event, context)
