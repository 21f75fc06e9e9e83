"""
Observability and monitoring setup for the face authentication service.
"""

import asyncio
from functools import wraps
from typing import Any, Callable, Dict, Optional

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = structlog.get_logger()

# Global tracer and meter
tracer: Optional[trace.Tracer] = None
meter: Optional[metrics.Meter] = None

# Metrics instruments
enrollment_counter: Optional[metrics.Counter] = None
login_counter: Optional[metrics.Counter] = None
match_distance_histogram: Optional[metrics.Histogram] = None
operation_duration: Optional[metrics.Histogram] = None


def setup_observability(
    service_name: str = "face-auth-service",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    enable_console_export: bool = False
) -> None:
    """
    Set up OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for tracing
        service_version: Version of the service
        otlp_endpoint: OTLP endpoint for trace/metric export
        enable_console_export: Whether to enable console export for development
    """
    global tracer, meter
    global enrollment_counter, login_counter, match_distance_histogram, operation_duration

    logger.info(
        "Setting up observability",
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint
    )

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
    })

    trace_provider = TracerProvider(resource=resource)
    if otlp_endpoint:
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    if enable_console_export:
        trace_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer(__name__)

    metric_readers = []
    if otlp_endpoint:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
                export_interval_millis=30000  # 30 seconds
            )
        )
    if enable_console_export:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=ConsoleMetricExporter(),
                export_interval_millis=60000  # 60 seconds
            )
        )

    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))
    meter = metrics.get_meter(__name__)

    enrollment_counter = meter.create_counter(
        name="face_enrollment_steps_total",
        description="Total number of face enrollment steps",
        unit="1"
    )

    login_counter = meter.create_counter(
        name="face_logins_total",
        description="Total number of face login attempts",
        unit="1"
    )

    match_distance_histogram = meter.create_histogram(
        name="face_match_distance",
        description="Distance of the best matching descriptor on successful logins",
        unit="1"
    )

    operation_duration = meter.create_histogram(
        name="face_auth_operation_duration_seconds",
        description="Duration of enrollment and login operations",
        unit="s"
    )

    logger.info("Observability setup completed")


def instrument_fastapi_app(app) -> None:
    """Instrument FastAPI application with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)
    logger.info("FastAPI application instrumented with OpenTelemetry")


def trace_function(operation_name: Optional[str] = None):
    """
    Decorator to trace function execution.

    Args:
        operation_name: Optional custom operation name for the span
    """
    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        def _record_error(span, e: Exception) -> None:
            span.record_exception(e)
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            if tracer is None:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                try:
                    result = await func(*args, **kwargs)
                    span.set_attribute("success", True)
                    return result
                except Exception as e:
                    _record_error(span, e)
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            if tracer is None:
                return func(*args, **kwargs)

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                try:
                    result = func(*args, **kwargs)
                    span.set_attribute("success", True)
                    return result
                except Exception as e:
                    _record_error(span, e)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def record_enrollment_metrics(success: bool, processing_time: float, progress: Optional[int]) -> None:
    """
    Record metrics for one enrollment step.

    Args:
        success: Whether the step was stored
        processing_time: Time taken in seconds
        progress: Submitted step number, if it was an integer
    """
    if enrollment_counter is None or operation_duration is None:
        return

    attributes = {
        "operation": "enrollment",
        "success": str(success).lower(),
        "progress": str(progress),
    }
    enrollment_counter.add(1, attributes)
    operation_duration.record(processing_time, attributes)


def record_login_metrics(success: bool, processing_time: float, distance: Optional[float]) -> None:
    """
    Record metrics for a face login attempt.

    Args:
        success: Whether an identity matched
        processing_time: Time taken in seconds
        distance: Best match distance on success
    """
    if login_counter is None or operation_duration is None:
        return

    attributes = {"operation": "login", "success": str(success).lower()}
    login_counter.add(1, attributes)
    operation_duration.record(processing_time, attributes)

    if distance is not None and match_distance_histogram is not None:
        match_distance_histogram.record(distance)


def get_trace_context() -> Dict[str, Any]:
    """
    Get current trace context information.

    Returns:
        Dict with trace ID and span ID if available
    """
    current_span = trace.get_current_span()
    if current_span is None or not current_span.is_recording():
        return {}

    span_context = current_span.get_span_context()
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
    }
