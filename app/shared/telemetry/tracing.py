"""Span helpers for repository calls and the upload pipeline.

Spans are named ``forms.<operation>``. Only identifiers and paging values are
copied from keyword arguments; metadata values and file contents never are.
"""

import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

_tracer = trace.get_tracer("forms-library")

# Keyword arguments recorded as ``arg.<name>`` span attributes.
_RECORDED_KWARGS = frozenset({
    "form_id", "user_id", "upload_id", "page_size", "cursor", "storage_ref",
    "action", "limit", "count",
})


def _record_kwargs(span: trace.Span, kwargs: dict[str, Any]) -> None:
    for key, value in kwargs.items():
        if key in _RECORDED_KWARGS and value is not None:
            span.set_attribute(f"arg.{key}", str(value))


def _start_span(name: str, attributes: dict | None):
    # Failures are recorded by _mark_failed, once.
    return _tracer.start_as_current_span(
        name,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    )


def _mark_failed(span: trace.Span, exc: Exception) -> None:
    # FormsException subclasses carry a machine-readable code.
    code = getattr(exc, "error_code", None)
    if code:
        span.set_attribute("forms.error_code", str(code))
    span.set_status(Status(StatusCode.ERROR, str(exc)))
    span.record_exception(exc)


def traced(
    operation_name: str | None = None,
    attributes: dict[str, str | int | float | bool] | None = None,
) -> Callable:
    """Wrap a sync or async callable in a span.

    Args:
        operation_name: Span name; defaults to ``module.function``.
        attributes: Static attributes set on every span.
    """

    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _start_span(span_name, attributes) as span:
                    _record_kwargs(span, kwargs)
                    try:
                        return await func(*args, **kwargs)
                    except Exception as e:
                        _mark_failed(span, e)
                        raise

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _start_span(span_name, attributes) as span:
                _record_kwargs(span, kwargs)
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    _mark_failed(span, e)
                    raise

        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Set attributes on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)


def add_span_event(name: str, attributes: dict | None = None) -> None:
    """Add an event (e.g. ``upload.stored``) to the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=attributes or {})
