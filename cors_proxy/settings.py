"""Pipeline configuration, read from the environment once at startup."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from cors_proxy.proxy.headers import parse_header_list

logger = logging.getLogger("uvicorn.error")

DEFAULT_PROXY_TIMEOUT = 300.0


@dataclass(frozen=True)
class ProxySettings:
    # Lower-cased header names stripped from every forwarded request
    headers_to_delete: frozenset = frozenset()
    # Shared secret expected in X-Proxy-Token; None disables access control
    proxy_token: Optional[str] = None
    # Upstream timeout in seconds; None leaves the request unbounded
    timeout: Optional[float] = DEFAULT_PROXY_TIMEOUT


def _parse_timeout(raw: str) -> Optional[float]:
    if not raw:
        return DEFAULT_PROXY_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        logger.warning(
            f"Invalid PROXY_TIMEOUT {raw!r}, using default of {DEFAULT_PROXY_TIMEOUT}s"
        )
        return DEFAULT_PROXY_TIMEOUT
    return timeout if timeout > 0 else None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ProxySettings:
    env = os.environ if environ is None else environ

    return ProxySettings(
        headers_to_delete=parse_header_list(env.get("HEADERS_TO_DELETE")),
        proxy_token=env.get("PROXY_TOKEN") or None,
        timeout=_parse_timeout(env.get("PROXY_TIMEOUT", "").strip()),
    )
