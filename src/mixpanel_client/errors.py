"""
Mixpanel client error types.
"""

from typing import Any, Optional


class MixpanelError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(MixpanelError):
    def __init__(self, message: str, code: str = "config_error"):
        super().__init__(code, message)


class MessageBuildError(MixpanelError):
    def __init__(self, message: str, code: str = "message_build_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class SerializationError(MixpanelError):
    def __init__(self, message: str):
        super().__init__("serialization_error", message)


class TransportError(MixpanelError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("transport_error", message, details)
