from typing import Optional

from fastapi import HTTPException


class ProxyError(HTTPException):
    """Base class for failures the proxy answers itself instead of forwarding."""

    status_code = 500
    default_detail = "Proxy error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or type(self).default_detail,
        )


class Unauthorized(ProxyError):
    status_code = 401
    default_detail = "Unauthorized"


class MissingDestination(ProxyError):
    status_code = 500
    default_detail = "You need to set the X-Url-Destination header"


class UpstreamUnreachable(ProxyError):
    status_code = 502
    default_detail = "Bad gateway - cannot reach destination"


class UpstreamTimeout(UpstreamUnreachable):
    status_code = 504
    default_detail = "Gateway timeout"
