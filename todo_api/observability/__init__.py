"""Observability wiring: structlog with request-scoped contextvars, OpenTelemetry
tracing and metrics, and the process-wide bootstrap that ties them together.
"""
