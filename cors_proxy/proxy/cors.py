"""The fixed CORS header set stamped on every response the proxy sends."""

from typing import Dict, MutableMapping, Optional

ALLOW_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
ALLOW_HEADERS = (
    "Accept, Authorization, Content-Length, Content-Type, Depth, DPoP, "
    "If-None-Match, Link, Location, On-Behalf-Of, Origin, Slug, WebID-TLS, "
    "X-Requested-With"
)
EXPOSE_HEADERS = (
    "Content-disposition,Content-Type,Access-Control-Allow-Headers,"
    "Access-Control-Allow-Methods,Access-Control-Allow-Origin,Allow,Accept-Patch,"
    "Accept-Post,Authorization,Content-Length,ETag,Last-Modified,Link,Location,"
    "Updates-Via,User,Vary,WAC-Allow,WWW-Authenticate"
)
ALLOW_CREDENTIALS = "true"
MAX_AGE = "86400"


def cors_headers(origin: Optional[str]) -> Dict[str, str]:
    """
    Build the CORS headers for a caller's ``Origin`` (``*`` when absent).

    Every header is present under its canonical spelling and its lower-case
    spelling, for consumers that look headers up case-sensitively.
    """
    canonical = {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Credentials": ALLOW_CREDENTIALS,
        "Access-Control-Max-Age": MAX_AGE,
        "Access-Control-Expose-Headers": EXPOSE_HEADERS,
    }
    headers = dict(canonical)
    headers.update({name.lower(): value for name, value in canonical.items()})
    return headers


def apply_cors_headers(headers: MutableMapping[str, str], origin: Optional[str]) -> None:
    """Overwrite (never merge) the CORS headers on a response header collection."""
    for name, value in cors_headers(origin).items():
        headers[name] = value
