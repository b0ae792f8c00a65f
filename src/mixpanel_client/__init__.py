"""
mixpanel-client — Mixpanel ingestion client for Python.

Builds track, alias and people messages from loosely-typed property objects
and sends them, singly or in batches, to the Mixpanel HTTP API.
"""

from mixpanel_client.client import MixpanelClient, AsyncMixpanelClient
from mixpanel_client.config import MixpanelConfig
from mixpanel_client.core.batching import MAX_BATCH_SIZE
from mixpanel_client.core.extractor import mixpanel_properties, register_properties
from mixpanel_client.core.names import PropertyNameFormat
from mixpanel_client.errors import (
    MixpanelError,
    ConfigError,
    MessageBuildError,
    SerializationError,
    TransportError,
)
from mixpanel_client.models.message import MessageEndpoint, MessageKind, MixpanelMessage
from mixpanel_client.models.result import BatchMessageTest, MessageTest, SendResult
from mixpanel_client.transport.http import IpAddressHandling

__version__ = "0.1.0"
__all__ = [
    "MixpanelClient",
    "AsyncMixpanelClient",
    "MixpanelConfig",
    "MAX_BATCH_SIZE",
    "mixpanel_properties",
    "register_properties",
    "PropertyNameFormat",
    "IpAddressHandling",
    "MixpanelError",
    "ConfigError",
    "MessageBuildError",
    "SerializationError",
    "TransportError",
    "MessageEndpoint",
    "MessageKind",
    "MixpanelMessage",
    "BatchMessageTest",
    "MessageTest",
    "SendResult",
]
