from __future__ import annotations

import structlog
from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, MetricReader, PeriodicExportingMetricReader

from todo_api.config import Settings
from todo_api.observability.tracing import build_resource


METER_NAME = "todo_api"


class TodoMetrics:
    """Instruments recorded by the service.

    Wraps whatever meter it is given; a no-op meter turns every recording
    into a no-op, which is how the metrics-disabled variant runs.
    """

    def __init__(self, meter: metrics.Meter) -> None:
        self.meter = meter
        self.todos_created = meter.create_counter(
            "todos_created",
            unit="1",
            description="New todo items created",
        )
        self.http_request_duration = meter.create_histogram(
            "http_request_duration",
            unit="ms",
            description="HTTP request duration",
        )

    def record_todo_created(self) -> None:
        self.todos_created.add(1)

    def observe_http_request(self, elapsed_ms: float, *, method: str | None, status_code: int) -> None:
        self.http_request_duration.record(
            elapsed_ms,
            {"http.method": method or "", "http.status_code": status_code},
        )


def init_metrics(settings: Settings) -> MeterProvider | None:
    """
    Build a MeterProvider from settings and install it as the global provider.

    Returns None when metrics are disabled; callers then use a no-op meter.
    """
    log = structlog.get_logger("todo_api.metrics")
    if not settings.enable_metrics:
        log.info("metrics_disabled")
        return None

    readers: list[MetricReader] = []

    if settings.otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

        readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=settings.otlp_endpoint),
                export_interval_millis=settings.metrics_export_interval_ms,
            )
        )
        log.info("metrics_exporter_configured", exporter="otlp", endpoint=settings.otlp_endpoint)

    if settings.trace_console_export:
        readers.append(
            PeriodicExportingMetricReader(
                ConsoleMetricExporter(),
                export_interval_millis=settings.metrics_export_interval_ms,
            )
        )
        log.info("metrics_exporter_configured", exporter="console")

    provider = MeterProvider(resource=build_resource(settings), metric_readers=readers)
    metrics.set_meter_provider(provider)
    log.info("metrics_initialized")
    return provider
