"""
Default HTTP transports for the Mixpanel ingestion endpoints.

Both transports post the base64 payload as the form field ``data`` and use
the API key, when given, as the basic-auth user name (import endpoint).
"""

import json
from enum import Enum
from typing import Optional

import httpx

from mixpanel_client.errors import TransportError
from mixpanel_client.models.message import MessageEndpoint

DEFAULT_API_HOST = "https://api.mixpanel.com"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "mixpanel-client-python/0.1.0"

ENDPOINT_PATHS = {
    MessageEndpoint.TRACK: "/track",
    MessageEndpoint.ENGAGE: "/engage",
    MessageEndpoint.IMPORT: "/import",
}


class IpAddressHandling(str, Enum):
    NONE = "none"
    USE_REQUEST_IP = "use_request_ip"
    IGNORE_REQUEST_IP = "ignore_request_ip"


def endpoint_url(
    endpoint: MessageEndpoint,
    api_host: str = DEFAULT_API_HOST,
    ip_address_handling: IpAddressHandling = IpAddressHandling.NONE,
) -> str:
    try:
        path = ENDPOINT_PATHS[MessageEndpoint(endpoint)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown endpoint: {endpoint!r}")
    url = f"{api_host.rstrip('/')}{path}"
    if ip_address_handling is IpAddressHandling.USE_REQUEST_IP:
        url += "?ip=1"
    elif ip_address_handling is IpAddressHandling.IGNORE_REQUEST_IP:
        url += "?ip=0"
    return url


def _accepted(resp: httpx.Response) -> bool:
    """Mixpanel answers "1"/"0" as plain text, or JSON with a status field."""
    if resp.status_code >= 400:
        raise TransportError(
            f"HTTP {resp.status_code}: {resp.text[:200]}",
            details={"status_code": resp.status_code},
        )
    body = resp.text.strip()
    if body in ("1", "0"):
        return body == "1"
    try:
        status = json.loads(body).get("status")
    except (ValueError, AttributeError):
        return False
    return status in (1, "1", "OK", "ok")


class HttpTransport:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self._timeout = timeout

    def post(self, url: str, payload: str, api_key: Optional[str] = None) -> bool:
        with httpx.Client(timeout=self._timeout, headers={"User-Agent": USER_AGENT}) as client:
            resp = client.post(url, data={"data": payload}, auth=(api_key, "") if api_key else None)
        return _accepted(resp)


class AsyncHttpTransport:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self._timeout = timeout

    async def post(self, url: str, payload: str, api_key: Optional[str] = None) -> bool:
        async with httpx.AsyncClient(timeout=self._timeout, headers={"User-Agent": USER_AGENT}) as client:
            resp = await client.post(url, data={"data": payload}, auth=(api_key, "") if api_key else None)
        return _accepted(resp)
