from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from portfolio.core.config import Settings, WorkerSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"
EMPTY_TRACE_ID = "0" * 32
EMPTY_SPAN_ID = "0" * 16

logger = logging.getLogger(__name__)

_record_factory = logging.getLogRecordFactory()
_httpx_instrumentor = HTTPXClientInstrumentor()


@dataclass(frozen=True, slots=True)
class OtlpTarget:
    """Where spans are shipped; resolved from settings first, then the standard OTEL_* variables."""

    endpoint: str
    headers: dict[str, str] = field(default_factory=dict)

    def exporter(self) -> OTLPSpanExporter:
        return OTLPSpanExporter(endpoint=self.endpoint, headers=self.headers or None)


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None = None
    target: OtlpTarget | None = None

    @classmethod
    def start(cls, settings: Settings | WorkerSettings) -> TelemetryRuntime:
        if not settings.otel_enabled:
            return cls(enabled=False)
        if settings.otel_log_correlation:
            install_log_correlation()

        provider = TracerProvider(resource=_resource(settings), sampler=TraceIdRatioBased(settings.otel_trace_sample_ratio))
        target = resolve_otlp_target(settings)
        if target is None:
            logger.info("OTel exporter endpoint not set; spans remain local-only for service=%s", settings.otel_service_name)
        else:
            provider.add_span_processor(BatchSpanProcessor(target.exporter()))
        trace.set_tracer_provider(provider)
        _httpx_instrumentor.instrument()
        return cls(enabled=True, provider=provider, target=target)

    def stop(self) -> None:
        if not self.enabled:
            return
        _httpx_instrumentor.uninstrument()
        if self.provider is not None:
            self.provider.force_flush()
            self.provider.shutdown()


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """``key=value`` pairs separated by commas; malformed pairs are skipped."""
    pairs = (item.partition("=") for item in (raw or "").split(","))
    return {key.strip(): value.strip() for key, separator, value in pairs if separator and key.strip()}


def resolve_otlp_target(settings: Settings | WorkerSettings) -> OtlpTarget | None:
    endpoint = (
        settings.otel_exporter_otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    )
    if not endpoint:
        return None
    raw_headers = settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS")
    return OtlpTarget(endpoint=endpoint, headers=parse_otlp_headers(raw_headers))


def _resource(settings: Settings | WorkerSettings) -> Resource:
    return Resource.create({SERVICE_NAME: settings.otel_service_name, DEPLOYMENT_ENVIRONMENT: settings.environment})


def current_trace_ids() -> tuple[str, str]:
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return EMPTY_TRACE_ID, EMPTY_SPAN_ID
    return format(context.trace_id, "032x"), format(context.span_id, "016x")


def _correlated_record(*args: object, **kwargs: object) -> logging.LogRecord:
    record = _record_factory(*args, **kwargs)
    record.trace_id, record.span_id = current_trace_ids()
    return record


def install_log_correlation() -> None:
    """Stamp every log record with the active trace and span ids. Safe to call repeatedly."""
    if logging.getLogRecordFactory() is not _correlated_record:
        logging.setLogRecordFactory(_correlated_record)


def configure_logging() -> None:
    install_log_correlation()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def setup_api_telemetry(app: FastAPI, settings: Settings) -> TelemetryRuntime:
    runtime = TelemetryRuntime.start(settings)
    if runtime.enabled:
        FastAPIInstrumentor.instrument_app(app)
    return runtime


def shutdown_api_telemetry(app: FastAPI, runtime: TelemetryRuntime) -> None:
    if runtime.enabled:
        FastAPIInstrumentor.uninstrument_app(app)
    runtime.stop()


def setup_worker_telemetry(settings: WorkerSettings) -> TelemetryRuntime:
    return TelemetryRuntime.start(settings)


def shutdown_worker_telemetry(runtime: TelemetryRuntime) -> None:
    runtime.stop()
