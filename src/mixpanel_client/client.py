"""
MixpanelClient / AsyncMixpanelClient — main SDK clients.

Both clients share message building and introspection (get_*_message,
*_test, send_test). MixpanelClient sends through a blocking transport;
AsyncMixpanelClient awaits an async transport at the network call.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Iterator, Optional, Union

from mixpanel_client.config import ConfigResolver, MixpanelConfig
from mixpanel_client.core.assembler import assemble
from mixpanel_client.core.batching import Partition, partition
from mixpanel_client.core.encoding import to_base64
from mixpanel_client.core.extractor import PropertyExtractor
from mixpanel_client.core.properties import PropertyId
from mixpanel_client.core.rules import RULES, render_batch
from mixpanel_client.errors import ConfigError, MessageBuildError
from mixpanel_client.models.message import MessageEndpoint, MessageKind, MixpanelMessage
from mixpanel_client.models.result import BatchMessageTest, MessageTest, SendResult
from mixpanel_client.transport.dispatch import AsyncDispatcher, Dispatcher

logger = logging.getLogger("mixpanel_client.client")

MessageData = dict[str, Any]
Amount = Union[int, float, Decimal, str]

ENDPOINTS = {
    MessageKind.TRACK: MessageEndpoint.TRACK,
    MessageKind.ALIAS: MessageEndpoint.TRACK,
    MessageKind.PEOPLE_SET: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_SET_ONCE: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_ADD: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_APPEND: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_UNION: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_UNSET: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_DELETE: MessageEndpoint.ENGAGE,
    MessageKind.PEOPLE_TRACK_CHARGE: MessageEndpoint.ENGAGE,
}


class BaseMixpanelClient:
    """Message construction shared by the blocking and async clients."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_key: Optional[str] = None,
        config: Optional[MixpanelConfig] = None,
        super_properties: Any = None,
        defaults: Optional[MixpanelConfig] = None,
    ):
        self._token = token
        self._api_key = api_key
        self._config = ConfigResolver(config, defaults)
        self._extractor = PropertyExtractor(self._config.property_name_format())
        # Parsed once, read-only afterwards
        self._super_properties = tuple(self._extractor.extract(super_properties))
        self.utc_now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def super_properties(self) -> dict[str, Any]:
        return dict(self._super_properties)

    # -- message data --------------------------------------------------

    def _build(self, kind: MessageKind, properties: Any, distinct_id: Any,
               extra: Optional[dict[PropertyId, Any]] = None) -> MessageData:
        rules = RULES[kind]
        extra_properties = {rules.distinct_id: distinct_id, **(extra or {})}
        return assemble(
            rules,
            token=self._token,
            super_properties=self._super_properties,
            user_properties=properties,
            extra_properties=extra_properties,
            extractor=self._extractor,
            now=self.utc_now(),
        )

    def _track_data(self, event: str, properties: Any, distinct_id: Any) -> MessageData:
        return self._build(MessageKind.TRACK, properties, distinct_id, {PropertyId.EVENT: event})

    def _alias_data(self, alias: Any, distinct_id: Any) -> MessageData:
        return self._build(MessageKind.ALIAS, None, distinct_id, {PropertyId.ALIAS: alias})

    def _people_data(self, kind: MessageKind, properties: Any, distinct_id: Any) -> MessageData:
        return self._build(kind, properties, distinct_id)

    def _people_unset_data(self, property_names: Iterable[str], distinct_id: Any) -> MessageData:
        names = [property_names] if isinstance(property_names, str) else list(property_names)
        return self._build(MessageKind.PEOPLE_UNSET, None, distinct_id, {PropertyId.UNSET: names})

    def _people_track_charge_data(self, amount: Amount, time: Optional[datetime], distinct_id: Any) -> MessageData:
        return self._build(
            MessageKind.PEOPLE_TRACK_CHARGE, None, distinct_id,
            {PropertyId.AMOUNT: amount, PropertyId.TIME: time or self.utc_now()},
        )

    def _json_api_key(self, endpoint: MessageEndpoint, api_key: Optional[str]) -> Optional[str]:
        if api_key is not None or MessageEndpoint(endpoint) is not MessageEndpoint.IMPORT:
            return api_key
        return self._require_api_key()

    def _require_api_key(self) -> str:
        if not self._api_key:
            raise ConfigError("api_key is required for the import endpoint")
        return self._api_key

    # -- build / introspection -----------------------------------------

    def _log_error(self, message: str, error: Exception) -> None:
        logger.error("%s %s", message, error)
        log_fn = self._config.error_log_fn()
        if log_fn is not None:
            log_fn(message, error)

    def _get_message(self, kind: MessageKind, build: Callable[[], MessageData]) -> Optional[MixpanelMessage]:
        try:
            return MixpanelMessage(kind=kind, data=build())
        except Exception as e:
            self._log_error(f"Error creating '{kind.value}' message.", e)
            return None

    def _test_message(self, build: Callable[[], MessageData]) -> MessageTest:
        test = MessageTest()
        try:
            test.data = build()
            test.json_text = self._config.serialize_json_fn()(test.data)
            test.base64 = to_base64(test.json_text)
        except Exception as e:
            test.error = e
        return test

    def get_track_message(self, event: str, properties: Any = None, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_message(MessageKind.TRACK, lambda: self._track_data(event, properties, distinct_id))

    def track_test(self, event: str, properties: Any = None, *, distinct_id: Any = None) -> MessageTest:
        return self._test_message(lambda: self._track_data(event, properties, distinct_id))

    def get_alias_message(self, alias: Any, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_message(MessageKind.ALIAS, lambda: self._alias_data(alias, distinct_id))

    def alias_test(self, alias: Any, *, distinct_id: Any = None) -> MessageTest:
        return self._test_message(lambda: self._alias_data(alias, distinct_id))

    def get_people_set_message(self, properties: Any, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_people_message(MessageKind.PEOPLE_SET, properties, distinct_id)

    def people_set_test(self, properties: Any, *, distinct_id: Any = None) -> MessageTest:
        return self._test_people_message(MessageKind.PEOPLE_SET, properties, distinct_id)

    def get_people_set_once_message(self, properties: Any, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_people_message(MessageKind.PEOPLE_SET_ONCE, properties, distinct_id)

    def people_set_once_test(self, properties: Any, *, distinct_id: Any = None) -> MessageTest:
        return self._test_people_message(MessageKind.PEOPLE_SET_ONCE, properties, distinct_id)

    def get_people_add_message(self, properties: Any, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_people_message(MessageKind.PEOPLE_ADD, properties, distinct_id)

    def people_add_test(self, properties: Any, *, distinct_id: Any = None) -> MessageTest:
        return self._test_people_message(MessageKind.PEOPLE_ADD, properties, distinct_id)

    def get_people_append_message(self, properties: Any, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_people_message(MessageKind.PEOPLE_APPEND, properties, distinct_id)

    def people_append_test(self, properties: Any, *, distinct_id: Any = None) -> MessageTest:
        return self._test_people_message(MessageKind.PEOPLE_APPEND, properties, distinct_id)

    def get_people_union_message(self, properties: Any, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_people_message(MessageKind.PEOPLE_UNION, properties, distinct_id)

    def people_union_test(self, properties: Any, *, distinct_id: Any = None) -> MessageTest:
        return self._test_people_message(MessageKind.PEOPLE_UNION, properties, distinct_id)

    def get_people_unset_message(self, property_names: Iterable[str], *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_message(
            MessageKind.PEOPLE_UNSET, lambda: self._people_unset_data(property_names, distinct_id))

    def people_unset_test(self, property_names: Iterable[str], *, distinct_id: Any = None) -> MessageTest:
        return self._test_message(lambda: self._people_unset_data(property_names, distinct_id))

    def get_people_delete_message(self, *, distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_people_message(MessageKind.PEOPLE_DELETE, None, distinct_id)

    def people_delete_test(self, *, distinct_id: Any = None) -> MessageTest:
        return self._test_people_message(MessageKind.PEOPLE_DELETE, None, distinct_id)

    def get_people_track_charge_message(self, amount: Amount, time: Optional[datetime] = None, *,
                                        distinct_id: Any = None) -> Optional[MixpanelMessage]:
        return self._get_message(
            MessageKind.PEOPLE_TRACK_CHARGE, lambda: self._people_track_charge_data(amount, time, distinct_id))

    def people_track_charge_test(self, amount: Amount, time: Optional[datetime] = None, *,
                                 distinct_id: Any = None) -> MessageTest:
        return self._test_message(lambda: self._people_track_charge_data(amount, time, distinct_id))

    def _get_people_message(self, kind: MessageKind, properties: Any, distinct_id: Any) -> Optional[MixpanelMessage]:
        return self._get_message(kind, lambda: self._people_data(kind, properties, distinct_id))

    def _test_people_message(self, kind: MessageKind, properties: Any, distinct_id: Any) -> MessageTest:
        return self._test_message(lambda: self._people_data(kind, properties, distinct_id))

    # -- batches -------------------------------------------------------

    @staticmethod
    def _routed_batches(batches: Partition) -> Iterator[tuple[MessageEndpoint, list[MixpanelMessage]]]:
        """Track batches first, then engage batches, each in input order."""
        for batch in batches.track_batches:
            yield MessageEndpoint.TRACK, batch
        for batch in batches.engage_batches:
            yield MessageEndpoint.ENGAGE, batch

    def _start_send(self, batches: Partition) -> SendResult:
        result = SendResult()
        if batches.dropped:
            self._log_error(
                "Batch send skipped messages that failed to build.",
                MessageBuildError(f"{batches.dropped} message(s) were not built", details={"dropped": batches.dropped}),
            )
            result.record_dropped(batches.dropped)
        return result

    def send_test(self, messages: Iterable[Optional[MixpanelMessage]]) -> list[BatchMessageTest]:
        """Render every batch send() would post, without sending. Never raises for bad data."""
        tests = []
        for _, batch in self._routed_batches(partition(messages)):
            test = BatchMessageTest(data=render_batch(batch))
            try:
                test.json_text = self._config.serialize_json_fn()(test.data)
                test.base64 = to_base64(test.json_text)
            except Exception as e:
                test.error = e
            tests.append(test)
        return tests


class MixpanelClient(BaseMixpanelClient):
    """Blocking client: every send returns once the transport has answered."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._dispatcher = Dispatcher(self._config)

    def _send_message(self, kind: MessageKind, build: Callable[[], MessageData],
                      endpoint: Optional[MessageEndpoint] = None, api_key: Optional[str] = None) -> bool:
        message = self._get_message(kind, build)
        if message is None:
            return False
        return self._dispatch([message], endpoint or ENDPOINTS[kind], api_key)

    def _dispatch(self, batch: list[MixpanelMessage], endpoint: MessageEndpoint,
                  api_key: Optional[str] = None) -> bool:
        try:
            return self._dispatcher.dispatch(batch, endpoint, api_key)
        except Exception as e:
            self._log_error(f"Error sending {len(batch)} message(s) to '{endpoint.value}'.", e)
            return False

    def track(self, event: str, properties: Any = None, *, distinct_id: Any = None) -> bool:
        return self._send_message(MessageKind.TRACK, lambda: self._track_data(event, properties, distinct_id))

    def import_event(self, event: str, properties: Any = None, *, distinct_id: Any = None) -> bool:
        """Send a track message to the import endpoint (historical events, needs the API key)."""
        api_key = self._require_api_key()
        return self._send_message(
            MessageKind.TRACK, lambda: self._track_data(event, properties, distinct_id),
            MessageEndpoint.IMPORT, api_key,
        )

    def alias(self, alias: Any, *, distinct_id: Any = None) -> bool:
        return self._send_message(MessageKind.ALIAS, lambda: self._alias_data(alias, distinct_id))

    def people_set(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return self._send_people(MessageKind.PEOPLE_SET, properties, distinct_id)

    def people_set_once(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return self._send_people(MessageKind.PEOPLE_SET_ONCE, properties, distinct_id)

    def people_add(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return self._send_people(MessageKind.PEOPLE_ADD, properties, distinct_id)

    def people_append(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return self._send_people(MessageKind.PEOPLE_APPEND, properties, distinct_id)

    def people_union(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return self._send_people(MessageKind.PEOPLE_UNION, properties, distinct_id)

    def people_unset(self, property_names: Iterable[str], *, distinct_id: Any = None) -> bool:
        return self._send_message(
            MessageKind.PEOPLE_UNSET, lambda: self._people_unset_data(property_names, distinct_id))

    def people_delete(self, *, distinct_id: Any = None) -> bool:
        return self._send_people(MessageKind.PEOPLE_DELETE, None, distinct_id)

    def people_track_charge(self, amount: Amount, time: Optional[datetime] = None, *, distinct_id: Any = None) -> bool:
        return self._send_message(
            MessageKind.PEOPLE_TRACK_CHARGE, lambda: self._people_track_charge_data(amount, time, distinct_id))

    def _send_people(self, kind: MessageKind, properties: Any, distinct_id: Any) -> bool:
        return self._send_message(kind, lambda: self._people_data(kind, properties, distinct_id))

    def send(self, messages: Iterable[Optional[MixpanelMessage]]) -> SendResult:
        """Send messages in batches of at most 50, track batches before engage batches.

        None entries (messages that failed to build) are not sent and make the
        result unsuccessful.
        """
        batches = partition(messages)
        result = self._start_send(batches)
        # /track and /engage take no API key
        for endpoint, batch in self._routed_batches(batches):
            result.record(self._dispatch(batch, endpoint), batch)
        return result

    def send_json(self, endpoint: MessageEndpoint, message_json: str, api_key: Optional[str] = None) -> bool:
        """Post already-serialized JSON to an endpoint."""
        return self._dispatcher.send_json(MessageEndpoint(endpoint), message_json, self._json_api_key(endpoint, api_key))


class AsyncMixpanelClient(BaseMixpanelClient):
    """Async client: each send suspends at the network call only."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._dispatcher = AsyncDispatcher(self._config)

    async def _send_message(self, kind: MessageKind, build: Callable[[], MessageData],
                            endpoint: Optional[MessageEndpoint] = None, api_key: Optional[str] = None) -> bool:
        message = self._get_message(kind, build)
        if message is None:
            return False
        return await self._dispatch([message], endpoint or ENDPOINTS[kind], api_key)

    async def _dispatch(self, batch: list[MixpanelMessage], endpoint: MessageEndpoint,
                        api_key: Optional[str] = None) -> bool:
        try:
            return await self._dispatcher.dispatch(batch, endpoint, api_key)
        except Exception as e:
            self._log_error(f"Error sending {len(batch)} message(s) to '{endpoint.value}'.", e)
            return False

    async def track(self, event: str, properties: Any = None, *, distinct_id: Any = None) -> bool:
        return await self._send_message(MessageKind.TRACK, lambda: self._track_data(event, properties, distinct_id))

    async def import_event(self, event: str, properties: Any = None, *, distinct_id: Any = None) -> bool:
        api_key = self._require_api_key()
        return await self._send_message(
            MessageKind.TRACK, lambda: self._track_data(event, properties, distinct_id),
            MessageEndpoint.IMPORT, api_key,
        )

    async def alias(self, alias: Any, *, distinct_id: Any = None) -> bool:
        return await self._send_message(MessageKind.ALIAS, lambda: self._alias_data(alias, distinct_id))

    async def people_set(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return await self._send_people(MessageKind.PEOPLE_SET, properties, distinct_id)

    async def people_set_once(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return await self._send_people(MessageKind.PEOPLE_SET_ONCE, properties, distinct_id)

    async def people_add(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return await self._send_people(MessageKind.PEOPLE_ADD, properties, distinct_id)

    async def people_append(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return await self._send_people(MessageKind.PEOPLE_APPEND, properties, distinct_id)

    async def people_union(self, properties: Any, *, distinct_id: Any = None) -> bool:
        return await self._send_people(MessageKind.PEOPLE_UNION, properties, distinct_id)

    async def people_unset(self, property_names: Iterable[str], *, distinct_id: Any = None) -> bool:
        return await self._send_message(
            MessageKind.PEOPLE_UNSET, lambda: self._people_unset_data(property_names, distinct_id))

    async def people_delete(self, *, distinct_id: Any = None) -> bool:
        return await self._send_people(MessageKind.PEOPLE_DELETE, None, distinct_id)

    async def people_track_charge(self, amount: Amount, time: Optional[datetime] = None, *,
                                  distinct_id: Any = None) -> bool:
        return await self._send_message(
            MessageKind.PEOPLE_TRACK_CHARGE, lambda: self._people_track_charge_data(amount, time, distinct_id))

    async def _send_people(self, kind: MessageKind, properties: Any, distinct_id: Any) -> bool:
        return await self._send_message(kind, lambda: self._people_data(kind, properties, distinct_id))

    async def send(self, messages: Iterable[Optional[MixpanelMessage]]) -> SendResult:
        batches = partition(messages)
        result = self._start_send(batches)
        for endpoint, batch in self._routed_batches(batches):
            result.record(await self._dispatch(batch, endpoint), batch)
        return result

    async def send_json(self, endpoint: MessageEndpoint, message_json: str, api_key: Optional[str] = None) -> bool:
        return await self._dispatcher.send_json(MessageEndpoint(endpoint), message_json, self._json_api_key(endpoint, api_key))
