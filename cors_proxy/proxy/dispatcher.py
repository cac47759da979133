"""
Forward a resolved request to its destination and relay the answer.

The upstream call is the only network I/O in the pipeline. It is made with a
fresh ``httpx.AsyncClient`` in streaming mode; the raw body is relayed chunk
by chunk and the client is closed when the stream ends or the caller goes
away. Transport failures become 502/504 responses, never retries.
"""

import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi.responses import StreamingResponse
from opentelemetry import trace

from cors_proxy.proxy.context import RequestContext
from cors_proxy.proxy.cors import apply_cors_headers
from cors_proxy.proxy.errors import (
    MissingDestination,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from cors_proxy.proxy.headers import HOP_BY_HOP_HEADERS, outbound_headers
from cors_proxy.settings import ProxySettings
from cors_proxy.utils import mask_token
from cors_proxy.utils.exception_logging import log_exception_with_details

logger = logging.getLogger("uvicorn.error")


async def _relay_body(
    upstream: httpx.Response, client: httpx.AsyncClient
) -> AsyncIterator[bytes]:
    try:
        # Raw bytes: Content-Encoding and Content-Length stay valid
        async for chunk in upstream.aiter_raw():
            yield chunk
    except httpx.TransportError as e:
        # Headers are already sent, the caller sees a truncated body
        log_exception_with_details(
            logger, f"[Upstream] Body stream from {upstream.request.url} broke", e
        )
        raise
    finally:
        await upstream.aclose()
        await client.aclose()


def _log_upstream_failure(
    context: RequestContext, settings: ProxySettings, error: Exception
) -> None:
    log_exception_with_details(
        logger, f"[Upstream] Request to {context.destination.origin} failed", error
    )
    logger.error(
        "[Upstream] Original request headers: "
        + mask_token(str(dict(context.inbound_headers)), settings.proxy_token)
    )


async def forward(
    context: RequestContext,
    settings: ProxySettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StreamingResponse:
    """
    Send the request to ``context.destination`` and relay status, headers
    and body, with the CORS header set overwritten on top.
    """
    if context.destination is None:
        raise MissingDestination()

    span = trace.get_current_span()
    destination = context.destination
    headers = outbound_headers(context.inbound_headers)
    logger.debug(
        "[Upstream] Original request headers: "
        + mask_token(str(dict(context.inbound_headers)), settings.proxy_token)
    )
    logger.debug(f"[Upstream] Modified request headers: {dict(headers)}")

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout),
        # 3xx answers are relayed to the caller untouched
        follow_redirects=False,
        transport=transport,
    )
    try:
        request = client.build_request(
            context.method,
            destination.url,
            headers=headers,
            content=context.body or None,
        )
    except httpx.InvalidURL as e:
        await client.aclose()
        logger.warning(f"[Destination] Rejected destination {destination.url}: {e}")
        raise MissingDestination(f"Invalid destination URL: {destination.url}") from e

    try:
        upstream = await client.send(request, stream=True)
    except httpx.TimeoutException as e:
        await client.aclose()
        span.set_attribute("proxy.error", "timeout")
        _log_upstream_failure(context, settings, e)
        raise UpstreamTimeout() from e
    except httpx.TransportError as e:
        await client.aclose()
        span.set_attribute("proxy.error", "connection_failed")
        _log_upstream_failure(context, settings, e)
        raise UpstreamUnreachable(
            f"Bad gateway - cannot reach {destination.origin}"
        ) from e
    except BaseException:
        # Cancelled while waiting for the upstream, e.g. the caller went away
        await client.aclose()
        raise

    try:
        span.set_attribute("proxy.status_code", upstream.status_code)
        logger.info(f"[Upstream] Received response with status: {upstream.status_code}")
        logger.debug(f"[Upstream] Original response headers: {dict(upstream.headers)}")

        response = StreamingResponse(
            _relay_body(upstream, client), status_code=upstream.status_code
        )
        # Byte pairs as received, header values need not be latin-1 or ASCII
        response.raw_headers.extend(
            (name.lower(), value)
            for name, value in upstream.headers.raw
            if name.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
        )
        apply_cors_headers(response.headers, context.origin_header)
    except BaseException:
        # _relay_body never runs, so its cleanup happens here
        await upstream.aclose()
        await client.aclose()
        raise

    logger.debug(f"[Upstream] Modified response headers: {dict(response.headers)}")
    return response
