import hmac
import logging
from typing import Optional

import httpx

from cors_proxy.proxy.errors import Unauthorized
from cors_proxy.proxy.headers import PROXY_TOKEN_HEADER, without_headers
from cors_proxy.utils import token_fingerprint

logger = logging.getLogger("uvicorn.error")


def authorize(headers: httpx.Headers, proxy_token: Optional[str]) -> httpx.Headers:
    """
    Enforce the shared secret when one is configured.

    Returns the headers without X-Proxy-Token so the credential never leaks
    upstream. Raises Unauthorized when the token is missing or wrong.
    """
    if not proxy_token:
        return headers

    presented = headers.get(PROXY_TOKEN_HEADER)
    if presented is None or not hmac.compare_digest(
        presented.encode("utf-8"), proxy_token.encode("utf-8")
    ):
        logger.warning(
            f"[Access] Rejected request, presented token: {token_fingerprint(presented)}"
        )
        raise Unauthorized()

    logger.debug("[Access] Proxy token accepted")
    return without_headers(headers, {PROXY_TOKEN_HEADER})
