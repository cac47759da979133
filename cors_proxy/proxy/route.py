import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from opentelemetry import trace

from cors_proxy.proxy.access import authorize
from cors_proxy.proxy.context import RequestContext
from cors_proxy.proxy.destination import destination_from_path, resolve_destination
from cors_proxy.proxy.dispatcher import forward
from cors_proxy.proxy.headers import DESTINATION_HEADER, sanitize_headers
from cors_proxy.settings import ProxySettings
from cors_proxy.utils.traced_requests import traced_request

router = APIRouter(prefix="/proxy")
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# OPTIONS never reaches the router, CorsMiddleware answers it
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


def get_settings(request: Request) -> ProxySettings:
    return request.app.state.settings


def get_upstream_transport(request: Request) -> Optional[httpx.AsyncBaseTransport]:
    return getattr(request.app.state, "upstream_transport", None)


def _raw_path(request: Request) -> str:
    """The request path as sent by the caller, before percent-decoding."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return request.url.path


async def build_request_context(
    request: Request, settings: ProxySettings = Depends(get_settings)
) -> RequestContext:
    """Run sanitization, access control and destination resolution."""
    inbound = httpx.Headers(request.headers.raw)
    headers = sanitize_headers(inbound, settings.headers_to_delete)
    headers = authorize(headers, settings.proxy_token)

    raw_destination = destination_from_path(
        _raw_path(request), request.scope.get("query_string", b"").decode("latin-1")
    )
    if raw_destination is None:
        raw_destination = headers.get(DESTINATION_HEADER)
    destination = resolve_destination(raw_destination)

    return RequestContext(
        method=request.method,
        body=await request.body(),
        inbound_headers=headers,
        origin_header=request.headers.get("origin"),
        raw_destination=raw_destination,
        destination=destination,
    )


async def proxy_request(
    context: RequestContext = Depends(build_request_context),
    settings: ProxySettings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_upstream_transport),
) -> Response:
    """Forward the request to the destination it names."""
    destination = context.destination
    with traced_request(
        tracer,
        operation="proxy_request",
        start_message=f"[Proxy] Proxying request to: {context.method} {destination.url}",
        extra_attrs={
            "proxy.method": context.method,
            "proxy.origin": destination.origin,
            "proxy.path": destination.path,
        },
    ):
        return await forward(context, settings, transport)


router.add_api_route("", proxy_request, methods=PROXY_METHODS, include_in_schema=False)
router.add_api_route(
    "/{rest:path}", proxy_request, methods=PROXY_METHODS, include_in_schema=False
)
