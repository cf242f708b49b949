from __future__ import annotations

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from onebase.context import CORRELATION_HEADER
from onebase.core.config import Settings


_provider: TracerProvider | None = None
_exporting = False


def _tracer_provider(service_name: str, service_version: str) -> TracerProvider:
    global _provider

    if _provider is None:
        resource = Resource.create({"service.name": service_name, "service.version": service_version})
        _provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(settings: Settings) -> TracerProvider | None:
    """Install the SDK provider and, when an endpoint is set, ship spans over OTLP/HTTP."""
    global _exporting

    if not settings.otel_enabled:
        return None

    provider = _tracer_provider(settings.otel_service_name, settings.app_version)
    if settings.otel_exporter_otlp_endpoint and not _exporting:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
        _exporting = True
    return provider


def setup_inmemory_otel(service_name: str = "onebase-api") -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    _tracer_provider(service_name, "test").add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def server_request_hook(span: trace.Span | None, scope: dict[str, Any]) -> None:
    if span is None or not span.is_recording():
        return
    for name, value in scope.get("headers", []):
        if name == CORRELATION_HEADER.encode("latin-1"):
            span.set_attribute("correlation_id", value.decode("latin-1"))
            return
