from typing import List, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from sourcelink.config import settings
from sourcelink.logging import get_logger

logger = get_logger(__name__)

_trace_provider: Optional[TracerProvider] = None
_span_processors: List[BatchSpanProcessor] = []


def create_resource() -> Resource:
    """Create OpenTelemetry resource with service information."""
    return Resource.create(
        {
            "service.name": settings.OTEL_SERVICE_NAME,
            "service.version": settings.OTEL_SERVICE_VERSION,
            "service.environment": settings.ENVIRONMENT.value,
        }
    )


def setup_tracing() -> None:
    """Install the SDK tracer provider, exporting over OTLP gRPC when an endpoint is configured."""
    global _trace_provider

    if _trace_provider is not None:
        return

    provider = TracerProvider(
        resource=create_resource(),
        sampler=TraceIdRatioBased(rate=settings.TRACE_SAMPLING_RATE),
    )

    if settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        exporter = OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True)
        processor = BatchSpanProcessor(exporter)
        provider.add_span_processor(processor)
        _span_processors.append(processor)
        logger.info("OTLP gRPC trace exporter configured", endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT)

    trace.set_tracer_provider(provider)
    _trace_provider = provider

    logger.info(
        "OpenTelemetry tracing configured",
        sampling_rate=settings.TRACE_SAMPLING_RATE,
        exporters_count=len(_span_processors),
    )


def shutdown_tracing() -> None:
    """Flush pending spans and release exporters."""
    global _trace_provider

    for processor in _span_processors:
        processor.force_flush(timeout_millis=1000)
        processor.shutdown()
    _span_processors.clear()

    _trace_provider = None
    logger.info("OpenTelemetry tracing shut down")
