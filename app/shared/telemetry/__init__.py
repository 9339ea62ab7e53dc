"""Logging, OpenTelemetry setup and span helpers for the forms service."""

from app.shared.telemetry.logging import get_logger, setup_logging
from app.shared.telemetry.telemetry import ServiceTelemetry
from app.shared.telemetry.tracing import add_span_attributes, add_span_event, traced

__all__ = [
    "ServiceTelemetry",
    "add_span_attributes",
    "add_span_event",
    "get_logger",
    "setup_logging",
    "traced",
]
