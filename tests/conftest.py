from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from mixpanel_client import MixpanelClient, MixpanelConfig

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingTransport:
    """Stand-in for the HTTP post function; answers from a scripted list, then True."""

    def __init__(self, results: Optional[list[Any]] = None):
        self.calls: list[tuple[str, str, Optional[str]]] = []
        self._results = list(results or [])

    def __call__(self, url: str, payload: str, api_key: Optional[str] = None) -> bool:
        self.calls.append((url, payload, api_key))
        if self._results:
            result = self._results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return True

    @property
    def urls(self) -> list[str]:
        return [url for url, _, _ in self.calls]


class ErrorLog:
    def __init__(self) -> None:
        self.entries: list[tuple[str, Exception]] = []

    def __call__(self, message: str, error: Exception) -> None:
        self.entries.append((message, error))


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def error_log() -> ErrorLog:
    return ErrorLog()


@pytest.fixture
def make_client(transport, error_log):
    def factory(token: Optional[str] = "tok", **kwargs: Any) -> MixpanelClient:
        config = kwargs.pop("config", None) or MixpanelConfig(http_post_fn=transport, error_log_fn=error_log)
        client = MixpanelClient(token, config=config, **kwargs)
        client.utc_now = lambda: NOW
        return client
    return factory
