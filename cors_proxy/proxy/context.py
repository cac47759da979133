from dataclasses import dataclass
from typing import Optional

import httpx

from cors_proxy.proxy.destination import ResolvedDestination


@dataclass
class RequestContext:
    """Everything the pipeline knows about one inbound request."""

    method: str
    body: bytes
    inbound_headers: httpx.Headers
    origin_header: Optional[str] = None
    raw_destination: Optional[str] = None
    destination: Optional[ResolvedDestination] = None
