"""
Header sanitization for the forwarding proxy.

Two lists of header names are stripped before a request goes anywhere:
the caller's own list (``X-Headers-Delete``) and the operator's list
(``HEADERS_TO_DELETE``). Outbound headers additionally lose everything that
identifies the proxy hop or only controls the proxy itself.
"""

import logging
from typing import Iterable, Optional

import httpx

logger = logging.getLogger("uvicorn.error")

DELETE_HEADERS_HEADER = "x-headers-delete"
DESTINATION_HEADER = "x-url-destination"
PROXY_TOKEN_HEADER = "x-proxy-token"

# Hop-by-hop headers that should NOT be forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

# Headers that would reveal the proxy hop to the destination
FORWARDED_HEADERS = frozenset(
    {
        "x-forwarded-for",
        "x-forwarded-host",
        "x-forwarded-proto",
    }
)

# Headers addressed to the proxy itself
PROXY_CONTROL_HEADERS = frozenset(
    {
        DESTINATION_HEADER,
        DELETE_HEADERS_HEADER,
        PROXY_TOKEN_HEADER,
    }
)

# host comes from the destination URL, content-length from the forwarded body
_RECOMPUTED_HEADERS = frozenset({"host", "content-length"})

OUTBOUND_EXCLUDED_HEADERS = (
    HOP_BY_HOP_HEADERS | FORWARDED_HEADERS | PROXY_CONTROL_HEADERS | _RECOMPUTED_HEADERS
)


def parse_header_list(raw: Optional[str]) -> frozenset:
    """Parse a comma separated list of header names into lower-cased names."""
    if not raw:
        return frozenset()
    return frozenset(name.strip().lower() for name in raw.split(",") if name.strip())


def without_headers(headers: httpx.Headers, names: Iterable[str]) -> httpx.Headers:
    """
    Return a copy of ``headers`` minus every header in ``names`` (lower-case).

    The raw byte pairs are copied, so values outside ASCII reach the
    destination exactly as the caller sent them.
    """
    excluded = frozenset(names)
    return httpx.Headers(
        [
            (name, value)
            for name, value in headers.raw
            if name.decode("latin-1").lower() not in excluded
        ]
    )


def sanitize_headers(
    headers: httpx.Headers, operator_deny_list: Iterable[str] = ()
) -> httpx.Headers:
    """
    Strip the caller's and the operator's deny-listed headers.

    The caller's list travels in ``X-Headers-Delete`` and is dropped as well,
    so it never reaches the destination.
    """
    deny_list = parse_header_list(headers.get(DELETE_HEADERS_HEADER)) | frozenset(
        name.lower() for name in operator_deny_list
    )
    sanitized = without_headers(headers, deny_list | {DELETE_HEADERS_HEADER})
    if deny_list:
        logger.debug(f"[Sanitizer] Removed headers: {sorted(deny_list)}")
    return sanitized


def outbound_headers(headers: httpx.Headers) -> httpx.Headers:
    """Headers to send to the destination, as if it were addressed directly."""
    return without_headers(headers, OUTBOUND_EXCLUDED_HEADERS)
