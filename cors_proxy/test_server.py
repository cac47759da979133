from unittest.mock import Mock

from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExportResult

from cors_proxy.server import BodyChunkSpanFilter, app, create_app
from cors_proxy.settings import ProxySettings


def test_create_app_keeps_settings_and_transport(upstream):
    settings = ProxySettings(proxy_token="s3cret")

    proxy_app = create_app(settings, transport=upstream.transport)

    assert proxy_app.state.settings is settings
    assert proxy_app.state.upstream_transport is upstream.transport


def test_module_app_exposes_metrics():
    with TestClient(app) as client:
        r = client.get("/metrics")

    assert r.status_code == 200
    assert "fastapi_app_info" in r.text
    assert r.headers["access-control-allow-origin"] == "*"


def test_module_app_answers_preflight():
    with TestClient(app) as client:
        r = client.options("/proxy", headers={"Origin": "https://app.example.com"})

    assert r.status_code == 200
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "https://app.example.com"


def _span(attributes):
    span = Mock(spec=ReadableSpan)
    span.attributes = attributes
    return span


def test_span_filter_drops_body_chunks():
    inner = Mock()
    inner.export.return_value = SpanExportResult.SUCCESS
    exporter = BodyChunkSpanFilter(inner)
    keep = _span({"proxy.origin": "https://api.example.com"})
    drop = _span({"asgi.event.type": "http.response.body"})

    assert exporter.export([keep, drop]) == SpanExportResult.SUCCESS

    inner.export.assert_called_once_with([keep])


def test_span_filter_skips_empty_batches():
    inner = Mock()
    exporter = BodyChunkSpanFilter(inner)

    result = exporter.export([_span({"asgi.event.type": "http.response.body"})])

    assert result == SpanExportResult.SUCCESS
    inner.export.assert_not_called()
