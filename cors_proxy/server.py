import logging
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from cors_proxy.proxy.preflight import CorsMiddleware
from cors_proxy.proxy.route import router as proxy_router
from cors_proxy.settings import ProxySettings, load_settings
from cors_proxy.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")


def _is_body_chunk_span(span: ReadableSpan) -> bool:
    return bool(span.attributes) and (
        span.attributes.get("asgi.event.type") == "http.response.body"
    )


class BodyChunkSpanFilter(SpanExporter):
    """Drops the per-chunk ASGI send spans of relayed bodies before export."""

    def __init__(self, exporter: SpanExporter):
        self._exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        kept = [span for span in spans if not _is_body_chunk_span(span)]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


def create_app(
    settings: Optional[ProxySettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application around an immutable settings record.

    ``transport`` replaces the network layer of the upstream client; tests
    pass an ``httpx.MockTransport`` here.
    """
    app = FastAPI(title=SERVICE_NAME)
    app.state.settings = settings if settings is not None else load_settings()
    app.state.upstream_transport = transport
    app.add_middleware(CorsMiddleware)
    app.include_router(proxy_router)

    if app.state.settings.proxy_token:
        logger.info("Proxy token configured, X-Proxy-Token is required")
    if app.state.settings.headers_to_delete:
        logger.info(
            f"Operator deny-list: {sorted(app.state.settings.headers_to_delete)}"
        )
    return app


def configure_tracing(app: FastAPI) -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    tracer_provider = trace.get_tracer_provider()
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
        )
        tracer_provider.add_span_processor(
            BatchSpanProcessor(BodyChunkSpanFilter(otlp_exporter))
        )

    FastAPIInstrumentor.instrument_app(
        app,
        server_request_hook=None,
        client_request_hook=None,
    )


app = create_app(load_settings())

instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app)

configure_tracing(app)

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})
