from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from urllib.parse import urlparse

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from retdec.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"

_BASE_LOG_RECORD_FACTORY = logging.getLogRecordFactory()
_LOG_CORRELATION_INSTALLED = False
_HTTPX_INSTRUMENTOR = HTTPXClientInstrumentor()
_RUNTIME: TelemetryRuntime | None = None

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None


def get_tracer(name: str) -> trace.Tracer:
    """Tracer of the client's own provider once installed, the global one otherwise."""
    provider = _RUNTIME.provider if _RUNTIME is not None else None
    return trace.get_tracer(name, tracer_provider=provider)


def configure_logging(level: int = logging.INFO) -> None:
    _install_log_correlation()
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)


def setup_telemetry(settings: Settings, *, span_exporter: SpanExporter | None = None) -> TelemetryRuntime:
    """Trace client operations and their API requests.

    Called by every façade; only the first call with ``otel_enabled`` installs
    a provider, later calls reuse it until ``shutdown_telemetry``. The provider
    is kept by the client instead of replacing the application's global one.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME
    if not settings.otel_enabled:
        return TelemetryRuntime(enabled=False, provider=None)

    if settings.otel_log_correlation:
        _install_log_correlation()

    provider = TracerProvider(
        resource=client_resource(settings),
        sampler=TraceIdRatioBased(settings.otel_trace_sample_ratio),
    )
    if span_exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    else:
        exporter = _build_exporter(settings)
        if exporter is not None:
            provider.add_span_processor(BatchSpanProcessor(exporter))
    _HTTPX_INSTRUMENTOR.instrument(tracer_provider=provider)
    _RUNTIME = TelemetryRuntime(enabled=True, provider=provider)
    logger.info("telemetry enabled service=%s api_url=%s", settings.otel_service_name, settings.api_url)
    return _RUNTIME


def shutdown_telemetry(runtime: TelemetryRuntime) -> None:
    global _RUNTIME
    if not runtime.enabled:
        return
    _HTTPX_INSTRUMENTOR.uninstrument()
    if runtime.provider is not None:
        runtime.provider.force_flush()
        runtime.provider.shutdown()
    if _RUNTIME is runtime:
        _RUNTIME = None


def client_resource(settings: Settings) -> Resource:
    parsed = urlparse(settings.api_url)
    attributes: dict[str, str | int] = {
        SERVICE_NAME: settings.otel_service_name,
        "retdec.api_url": settings.api_url,
        "server.address": parsed.hostname or "",
    }
    if parsed.port is not None:
        attributes["server.port"] = parsed.port
    return Resource.create(attributes)


def _build_exporter(settings: Settings) -> OTLPSpanExporter | None:
    endpoint = (
        settings.otel_exporter_otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    )
    if not endpoint:
        logger.info("no OTLP endpoint configured; client spans are not exported")
        return None
    return OTLPSpanExporter(
        endpoint=endpoint,
        headers=parse_headers(settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS")),
    )


def parse_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key=value`` OTLP header strings, skipping malformed items."""
    if not raw:
        return {}
    pairs = (item.partition("=") for item in raw.split(","))
    return {key.strip(): value.strip() for key, separator, value in pairs if separator and key.strip()}


def _install_log_correlation() -> None:
    global _LOG_CORRELATION_INSTALLED
    if _LOG_CORRELATION_INSTALLED:
        return

    def record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
        record = _BASE_LOG_RECORD_FACTORY(*args, **kwargs)
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "0" * 32
        record.span_id = format(context.span_id, "016x") if context.is_valid else "0" * 16
        return record

    logging.setLogRecordFactory(record_factory)
    _LOG_CORRELATION_INSTALLED = True
