"""OpenTelemetry tracing setup for the Forest Finder server.

Tracing is opt-in. When enabled, spans are exported over OTLP/HTTP and each
span is tagged with the component that produced it.

Environment Variables:
    TRACING_ENABLED: Set to 'true' to enable tracing (default: false)
    OTEL_EXPORTER_OTLP_ENDPOINT: Collector URL (default: http://localhost:4318)
    OTEL_SERVICE_NAME: Service name shown in the tracing UI (default: forest-finder)
"""

import os
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import ReadableSpan, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

COMPONENT_ATTRIBUTE = "forest_finder.component"

# Span name prefix -> component
_COMPONENTS = {
    "search.": "search",
    "address.": "address",
    "dataset.": "dataset",
}


def is_tracing_enabled() -> bool:
    """Check if tracing is enabled via environment variable."""
    return os.getenv("TRACING_ENABLED", "false").lower() == "true"


def get_otlp_endpoint() -> str:
    """Get the OTLP collector endpoint."""
    return os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")


def get_service_name() -> str:
    return os.getenv("OTEL_SERVICE_NAME", "forest-finder")


class ComponentTaggingProcessor(SpanProcessor):
    """Span processor that records which engine component emitted a span.

    Mappings:
        - 'search.*' spans -> search
        - 'address.*' spans -> address
        - 'dataset.*' spans -> dataset
        - anything else -> server
    """

    def on_start(self, span: Any, parent_context: Any = None) -> None:
        if not hasattr(span, "name") or not hasattr(span, "set_attribute"):
            return

        span_name = span.name.lower()
        for prefix, component in _COMPONENTS.items():
            if span_name.startswith(prefix):
                span.set_attribute(COMPONENT_ATTRIBUTE, component)
                return
        span.set_attribute(COMPONENT_ATTRIBUTE, "server")

    def on_end(self, span: ReadableSpan) -> None:
        pass

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


_tracer_provider: TracerProvider | None = None


def initialize_tracing() -> TracerProvider | None:
    """Initialize OpenTelemetry tracing.

    Returns:
        TracerProvider if tracing is enabled, None otherwise.
    """
    global _tracer_provider

    if not is_tracing_enabled():
        return None

    if _tracer_provider is not None:
        return _tracer_provider

    exporter = OTLPSpanExporter(endpoint=f"{get_otlp_endpoint()}/v1/traces")

    _tracer_provider = TracerProvider(resource=Resource.create({SERVICE_NAME: get_service_name()}))

    # Tagging processor first so exported spans carry the attribute
    _tracer_provider.add_span_processor(ComponentTaggingProcessor())
    _tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(_tracer_provider)
    return _tracer_provider


def get_tracer(name: str = "forest-finder") -> trace.Tracer:
    """Get a tracer instance (no-op until tracing is initialized)."""
    return trace.get_tracer(name)
