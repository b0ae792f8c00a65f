"""
Dispatcher — serializes a batch, base64-encodes it and hands it to the transport.

Serialization errors propagate to the caller. Anything the transport raises
is logged and reported as a failed dispatch.
"""

import logging
from typing import Any, Optional

from mixpanel_client.config import ConfigResolver
from mixpanel_client.core.encoding import to_base64
from mixpanel_client.core.rules import render_batch
from mixpanel_client.errors import SerializationError
from mixpanel_client.models.message import MessageEndpoint, MixpanelMessage

logger = logging.getLogger("mixpanel_client.transport.dispatch")


class _BaseDispatcher:
    def __init__(self, resolver: ConfigResolver):
        self._resolver = resolver

    def encode(self, value: Any) -> str:
        """JSON-serialize ``value`` with the configured serializer and base64 the result."""
        try:
            text = self._resolver.serialize_json_fn()(value)
        except Exception as e:
            raise SerializationError(f"Failed to serialize payload: {e}") from e
        return to_base64(text)

    def url(self, endpoint: MessageEndpoint) -> str:
        return self._resolver.endpoint_url(endpoint)


class Dispatcher(_BaseDispatcher):
    def dispatch(self, batch: list[MixpanelMessage], endpoint: MessageEndpoint,
                 api_key: Optional[str] = None) -> bool:
        payload = self.encode(render_batch(batch))
        logger.debug("Dispatching %d message(s) to %s", len(batch), endpoint.value)
        return self.post(endpoint, payload, api_key)

    def send_json(self, endpoint: MessageEndpoint, json_text: str, api_key: Optional[str] = None) -> bool:
        return self.post(endpoint, to_base64(json_text), api_key)

    def post(self, endpoint: MessageEndpoint, payload: str, api_key: Optional[str] = None) -> bool:
        url = self.url(endpoint)
        try:
            return bool(self._resolver.http_post_fn()(url, payload, api_key))
        except Exception as e:
            logger.warning("POST to %s failed: %s", url, e)
            return False


class AsyncDispatcher(_BaseDispatcher):
    async def dispatch(self, batch: list[MixpanelMessage], endpoint: MessageEndpoint,
                       api_key: Optional[str] = None) -> bool:
        payload = self.encode(render_batch(batch))
        logger.debug("Dispatching %d message(s) to %s", len(batch), endpoint.value)
        return await self.post(endpoint, payload, api_key)

    async def send_json(self, endpoint: MessageEndpoint, json_text: str, api_key: Optional[str] = None) -> bool:
        return await self.post(endpoint, to_base64(json_text), api_key)

    async def post(self, endpoint: MessageEndpoint, payload: str, api_key: Optional[str] = None) -> bool:
        url = self.url(endpoint)
        try:
            return bool(await self._resolver.async_http_post_fn()(url, payload, api_key))
        except Exception as e:
            logger.warning("POST to %s failed: %s", url, e)
            return False
