"""
Client configuration.

Every setting is resolved in this order:
  per-call override -> instance config -> host defaults config -> built-in default

The host defaults are an ordinary MixpanelConfig the application passes to
each client (``defaults=``); there is no process-wide config object.
"""

from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from mixpanel_client.core.encoding import serialize_json
from mixpanel_client.core.names import PropertyNameFormat
from mixpanel_client.models.message import MessageEndpoint
from mixpanel_client.transport.http import (
    DEFAULT_API_HOST,
    DEFAULT_TIMEOUT,
    AsyncHttpTransport,
    HttpTransport,
    IpAddressHandling,
    endpoint_url,
)

SerializeJsonFn = Callable[[Any], str]
HttpPostFn = Callable[[str, str, Optional[str]], bool]
AsyncHttpPostFn = Callable[[str, str, Optional[str]], Awaitable[bool]]
ErrorLogFn = Callable[[str, Exception], None]


class MixpanelConfig(BaseModel):
    serialize_json_fn: Optional[SerializeJsonFn] = None
    http_post_fn: Optional[HttpPostFn] = None
    async_http_post_fn: Optional[AsyncHttpPostFn] = None
    error_log_fn: Optional[ErrorLogFn] = None
    property_name_format: Optional[PropertyNameFormat] = None
    ip_address_handling: Optional[IpAddressHandling] = None
    api_host: Optional[str] = None
    timeout: Optional[float] = None

    def reset(self) -> None:
        """Clear every setting back to unset."""
        for name in type(self).model_fields:
            setattr(self, name, None)


class ConfigResolver:
    def __init__(self, config: Optional[MixpanelConfig] = None, defaults: Optional[MixpanelConfig] = None):
        self._config = config
        self._defaults = defaults

    def get(self, name: str, override: Any = None) -> Any:
        """Resolve ``name`` from override, instance config then defaults; None if unset everywhere."""
        if name not in MixpanelConfig.model_fields:
            raise AttributeError(f"Unknown config setting: {name}")
        if override is not None:
            return override
        for source in (self._config, self._defaults):
            if source is not None:
                value = getattr(source, name)
                if value is not None:
                    return value
        return None

    def serialize_json_fn(self, override: Optional[SerializeJsonFn] = None) -> SerializeJsonFn:
        return self.get("serialize_json_fn", override) or serialize_json

    def http_post_fn(self, override: Optional[HttpPostFn] = None) -> HttpPostFn:
        return self.get("http_post_fn", override) or HttpTransport(self.timeout()).post

    def async_http_post_fn(self, override: Optional[AsyncHttpPostFn] = None) -> AsyncHttpPostFn:
        return self.get("async_http_post_fn", override) or AsyncHttpTransport(self.timeout()).post

    def error_log_fn(self, override: Optional[ErrorLogFn] = None) -> Optional[ErrorLogFn]:
        return self.get("error_log_fn", override)

    def property_name_format(self, override: Optional[PropertyNameFormat] = None) -> PropertyNameFormat:
        return self.get("property_name_format", override) or PropertyNameFormat.NONE

    def ip_address_handling(self, override: Optional[IpAddressHandling] = None) -> IpAddressHandling:
        return self.get("ip_address_handling", override) or IpAddressHandling.NONE

    def api_host(self, override: Optional[str] = None) -> str:
        return self.get("api_host", override) or DEFAULT_API_HOST

    def timeout(self, override: Optional[float] = None) -> float:
        value = self.get("timeout", override)
        return DEFAULT_TIMEOUT if value is None else value

    def endpoint_url(self, endpoint: MessageEndpoint) -> str:
        return endpoint_url(endpoint, self.api_host(), self.ip_address_handling())
