"""
Destination resolution.

A request names its destination either in ``X-Url-Destination`` or as
``/proxy/<percent-encoded absolute URL>``. The path form wins: it is decoded
once and replaces any header value, so resolution has a single input.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

from cors_proxy.proxy.errors import MissingDestination

logger = logging.getLogger("uvicorn.error")

PROXY_PATH_PREFIX = "/proxy/"
SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class ResolvedDestination:
    origin: str
    path: str

    @property
    def url(self) -> str:
        return f"{self.origin}{self.path}"


def destination_from_path(raw_path: str, query_string: str = "") -> Optional[str]:
    """
    Extract the destination embedded after ``/proxy/`` in the raw request path.

    ``raw_path`` must still be percent-encoded; the result is decoded exactly
    once, query string included. Returns None when the path carries no
    destination.
    """
    if not raw_path.startswith(PROXY_PATH_PREFIX) or len(raw_path) <= len(PROXY_PATH_PREFIX):
        return None

    encoded = raw_path[len(PROXY_PATH_PREFIX):]
    if query_string:
        encoded = f"{encoded}?{query_string}"
    return unquote(encoded)


def resolve_destination(raw_destination: Optional[str]) -> ResolvedDestination:
    """Split an absolute http(s) URL into origin and path + query."""
    if not raw_destination or not raw_destination.strip():
        logger.warning("[Destination] No X-Url-Destination header found")
        raise MissingDestination()

    try:
        parts = urlsplit(raw_destination.strip())
        # Accessing port validates it
        parts.port
    except ValueError as e:
        logger.warning(f"[Destination] Unparseable destination {raw_destination!r}: {e}")
        raise MissingDestination(f"Invalid destination URL: {raw_destination}") from e

    if parts.scheme.lower() not in SUPPORTED_SCHEMES or not parts.hostname:
        logger.warning(f"[Destination] Not an absolute http(s) URL: {raw_destination!r}")
        raise MissingDestination(f"Invalid destination URL: {raw_destination}")

    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"

    destination = ResolvedDestination(origin=f"{parts.scheme}://{parts.netloc}", path=path)
    logger.info(f"[Destination] Proxying request to host: {destination.origin}")
    logger.info(f"[Destination] Proxying request to path: {destination.path}")
    return destination
