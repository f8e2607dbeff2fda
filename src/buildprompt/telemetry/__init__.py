"""OpenTelemetry tracing for the generation pipeline."""

from buildprompt.telemetry.setup import get_tracer, setup_telemetry, shutdown_telemetry

__all__ = ["get_tracer", "setup_telemetry", "shutdown_telemetry"]
