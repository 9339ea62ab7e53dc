"""OpenTelemetry setup for the forms service.

Built from Settings at startup when TELEMETRY_ENABLED is set. Exporters:
"console" (development), "otlp" (gRPC collector) or "none" (spans are
created for in-process use but not exported).
"""

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from app.core.config import Settings

logger = logging.getLogger(__name__)

# Health checks are noise; storage URLs carry download tokens in the query string.
_UNTRACED_URLS = "/api/v1/health,/api/v1/storage/"


def _build_exporter(kind: str, otlp_endpoint: str | None) -> SpanExporter | None:
    if kind == "none":
        return None
    if kind == "otlp":
        if not otlp_endpoint:
            raise ValueError("TELEMETRY_OTLP_ENDPOINT is required for the otlp exporter")
        return OTLPSpanExporter(
            endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
        )
    if kind != "console":
        logger.warning("Unknown telemetry exporter %r; using console", kind)
    return ConsoleSpanExporter()


class ServiceTelemetry:
    """Tracer provider plus FastAPI and logging instrumentation."""

    def __init__(self, provider: TracerProvider, exporter_kind: str) -> None:
        self.provider = provider
        self.exporter_kind = exporter_kind

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceTelemetry":
        resource = Resource(
            attributes={
                SERVICE_NAME: settings.app_name,
                SERVICE_VERSION: settings.app_version,
                "deployment.environment": settings.telemetry_environment,
                "forms.storage_backend": settings.storage_backend,
            }
        )
        provider = TracerProvider(
            resource=resource,
            sampler=TraceIdRatioBased(settings.telemetry_sample_rate),
        )
        exporter = _build_exporter(
            settings.telemetry_exporter, settings.telemetry_otlp_endpoint
        )
        if exporter is not None:
            provider.add_span_processor(BatchSpanProcessor(exporter))
        return cls(provider, settings.telemetry_exporter)

    def start(self, app: FastAPI) -> None:
        """Install the provider globally and instrument requests and log records."""
        trace.set_tracer_provider(self.provider)
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=self.provider,
            excluded_urls=_UNTRACED_URLS,
        )
        # Adds trace_id / span_id to every log record.
        LoggingInstrumentor().instrument(
            tracer_provider=self.provider,
            set_logging_format=True,
        )
        logger.info(
            "OpenTelemetry started (exporter=%s, sample_rate=%s)",
            self.exporter_kind,
            self.provider.sampler.get_description(),
        )

    def shutdown(self) -> None:
        """Flush pending spans; failures are logged, never raised on shutdown."""
        try:
            self.provider.shutdown()
        except Exception:
            logger.exception("Telemetry shutdown failed")
