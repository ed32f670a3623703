"""
OpenTelemetry tracing bootstrap and helpers.

The provider is installed globally so that spans opened by the Lambda host
adapter and spans opened inside handlers share one trace.
"""

from __future__ import annotations

import structlog
from opentelemetry import trace
from opentelemetry.sdk.extension.aws.trace import AwsXRayIdGenerator
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from todo_api.config import Settings


def build_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            SERVICE_NAME: settings.service_name,
            SERVICE_VERSION: settings.service_version,
            "deployment.environment": settings.environment,
        }
    )


def init_tracing(settings: Settings) -> TracerProvider:
    """
    Build a TracerProvider from settings and install it as the global provider.

    Exporters:
        OTLP (gRPC) when OTEL_EXPORTER_OTLP_ENDPOINT is set.
        Console when TRACE_CONSOLE_EXPORT is true.

    Sampling is parent based, so an upstream sampling decision (for example
    from API Gateway) is honoured; root spans use TRACE_SAMPLE_RATIO.
    """
    log = structlog.get_logger("todo_api.tracing")

    provider = TracerProvider(
        resource=build_resource(settings),
        sampler=ParentBased(TraceIdRatioBased(settings.trace_sample_ratio)),
        # X-Ray rejects trace ids that do not start with an epoch timestamp.
        id_generator=AwsXRayIdGenerator(),
    )

    if settings.otlp_endpoint:
        # Imported lazily; the gRPC stack is heavy and unused without an endpoint.
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
        log.info("tracing_exporter_configured", exporter="otlp", endpoint=settings.otlp_endpoint)

    if settings.trace_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        log.info("tracing_exporter_configured", exporter="console")

    trace.set_tracer_provider(provider)
    log.info("tracing_initialized", sample_ratio=settings.trace_sample_ratio)
    return provider


def get_trace_id() -> str | None:
    """Get the current trace ID as hex string."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        return format(span_context.trace_id, "032x")
    return None
