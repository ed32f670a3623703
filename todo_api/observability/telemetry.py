from __future__ import annotations

from dataclasses import dataclass

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider

from todo_api.config import Settings
from todo_api.observability.logging import configure_logging
from todo_api.observability.metrics import METER_NAME, TodoMetrics, init_metrics
from todo_api.observability.tracing import init_tracing


TRACER_NAME = "todo_api"


@dataclass
class Telemetry:
    """Tracer + metric instruments handed to the app, plus the providers behind them."""

    tracer: trace.Tracer
    metrics: TodoMetrics
    tracer_provider: TracerProvider | None = None
    meter_provider: MeterProvider | None = None

    @classmethod
    def from_globals(cls) -> Telemetry:
        """Use whatever providers are installed globally (no-op if none)."""
        return cls(tracer=trace.get_tracer(TRACER_NAME), metrics=TodoMetrics(metrics.get_meter(METER_NAME)))

    @classmethod
    def from_providers(
        cls,
        tracer_provider: TracerProvider,
        meter_provider: MeterProvider | None = None,
    ) -> Telemetry:
        meter = meter_provider.get_meter(METER_NAME) if meter_provider else metrics.NoOpMeter(METER_NAME)
        return cls(
            tracer=tracer_provider.get_tracer(TRACER_NAME),
            metrics=TodoMetrics(meter),
            tracer_provider=tracer_provider,
            meter_provider=meter_provider,
        )

    def force_flush(self) -> None:
        if self.tracer_provider is not None:
            self.tracer_provider.force_flush()
        if self.meter_provider is not None:
            self.meter_provider.force_flush()

    def shutdown(self) -> None:
        if self.tracer_provider is not None:
            self.tracer_provider.shutdown()
        if self.meter_provider is not None:
            self.meter_provider.shutdown()


_TELEMETRY: Telemetry | None = None


def init_telemetry(settings: Settings) -> Telemetry:
    """Process-wide bootstrap: logging, tracing and metrics. Runs once per process."""

    global _TELEMETRY
    if _TELEMETRY is None:
        configure_logging(settings)
        _TELEMETRY = Telemetry.from_providers(init_tracing(settings), init_metrics(settings))
    return _TELEMETRY
