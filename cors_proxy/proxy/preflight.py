"""
CORS preflight handling and response stamping.

``CorsMiddleware`` sits outside every route. Browsers send preflight
``OPTIONS`` requests without the proxy's trust headers, so these are answered
here before routing, sanitization or access control run, on any path. All
other responses, errors included, leave with the CORS header set overwritten.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from cors_proxy.proxy.cors import apply_cors_headers
from cors_proxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)

logger = logging.getLogger("uvicorn.error")


def preflight_response(request: Request) -> Response:
    """Answer a preflight request: 200, empty body, full CORS header set."""
    logger.info(f"[Preflight] Received OPTIONS request (preflight) for: {request.url.path}")
    response = Response(status_code=200)
    apply_cors_headers(response.headers, request.headers.get("origin"))
    return response


class CorsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return preflight_response(request)

        try:
            response = await call_next(request)
        except Exception as e:
            log_exception_with_details(
                logger, f"[Proxy] Unhandled error for {request.method} {request.url.path}", e
            )
            response = JSONResponse(
                status_code=500,
                content={"detail": f"Internal proxy error: {format_exception_message(e)}"},
            )

        apply_cors_headers(response.headers, request.headers.get("origin"))
        return response
