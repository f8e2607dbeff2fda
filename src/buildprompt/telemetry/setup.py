"""OpenTelemetry setup and configuration."""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)

from buildprompt import __version__
from buildprompt.config import Settings, get_settings

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None


def _create_exporter(settings: Settings) -> SpanExporter:
    """Create the span exporter named in settings."""
    if settings.otel_exporter_type == "otlp":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        return OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)

    if settings.otel_exporter_type == "otlp-http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter as OTLPHttpSpanExporter,
        )

        return OTLPHttpSpanExporter(
            endpoint=f"{settings.otel_exporter_otlp_http_endpoint}/v1/traces"
        )

    return ConsoleSpanExporter()


def setup_telemetry(settings: Settings | None = None) -> None:
    """Initialize OpenTelemetry tracing if enabled.

    Call before the application is created so the FastAPI and HTTPX
    instrumentation sees every request.
    """
    global _tracer_provider

    settings = settings or get_settings()

    if not settings.otel_enabled:
        logger.debug("OpenTelemetry tracing is disabled")
        return

    logger.info(
        "Initializing OpenTelemetry tracing (service=%s, exporter=%s)",
        settings.otel_service_name,
        settings.otel_exporter_type,
    )

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": "development" if settings.debug else "production",
        }
    )
    _tracer_provider = TracerProvider(resource=resource)
    _tracer_provider.add_span_processor(BatchSpanProcessor(_create_exporter(settings)))
    trace.set_tracer_provider(_tracer_provider)

    _instrument_libraries()


def _instrument_libraries() -> None:
    """Instrument FastAPI and outgoing HTTPX calls."""
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

        FastAPIInstrumentor().instrument()
        HTTPXClientInstrumentor().instrument()
    except Exception as e:
        logger.warning("Failed to instrument FastAPI/HTTPX: %s", e)


def shutdown_telemetry() -> None:
    """Flush pending spans and shut down the tracer provider."""
    global _tracer_provider

    if _tracer_provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for a module, typically ``__name__``."""
    return trace.get_tracer(name)
