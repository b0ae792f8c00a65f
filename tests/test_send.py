"""Single sends, batch send orchestration and dispatch."""

import base64
import json

import pytest

from mixpanel_client import (
    ConfigError,
    IpAddressHandling,
    MessageBuildError,
    MessageEndpoint,
    MessageKind,
    MixpanelConfig,
    MixpanelMessage,
    SerializationError,
    TransportError,
)
from mixpanel_client.config import ConfigResolver
from mixpanel_client.transport.dispatch import Dispatcher

from conftest import RecordingTransport

TRACK_URL = "https://api.mixpanel.com/track"
ENGAGE_URL = "https://api.mixpanel.com/engage"


def decode(payload: str):
    return json.loads(base64.b64decode(payload).decode("utf-8"))


def track_messages(client, n):
    return [client.get_track_message(f"e{i}", distinct_id="u1") for i in range(n)]


class TestSingleSend:
    def test_track_posts_one_message(self, make_client, transport):
        assert make_client().track("signup", {"plan": "pro"}, distinct_id="u1") is True
        assert transport.urls == [TRACK_URL]
        url, payload, api_key = transport.calls[0]
        assert api_key is None
        sent = decode(payload)
        assert len(sent) == 1
        assert sent[0]["event"] == "signup"
        assert sent[0]["properties"]["plan"] == "pro"

    def test_people_go_to_engage(self, make_client, transport):
        client = make_client()
        assert client.people_set({"a": 1}, distinct_id="u1")
        assert client.people_set_once({"a": 1}, distinct_id="u1")
        assert client.people_add({"a": 1}, distinct_id="u1")
        assert client.people_append({"a": 1}, distinct_id="u1")
        assert client.people_union({"a": [1]}, distinct_id="u1")
        assert client.people_unset(["a"], distinct_id="u1")
        assert client.people_delete(distinct_id="u1")
        assert client.people_track_charge(10, distinct_id="u1")
        assert transport.urls == [ENGAGE_URL] * 8

    def test_alias_goes_to_track(self, make_client, transport):
        assert make_client().alias("new", distinct_id="old")
        assert transport.urls == [TRACK_URL]

    def test_transport_false_is_reported(self, make_client):
        transport = RecordingTransport([False])
        client = make_client(config=MixpanelConfig(http_post_fn=transport))
        assert client.track("signup") is False

    def test_transport_exception_becomes_failure(self, make_client):
        transport = RecordingTransport([TransportError("HTTP 500")])
        client = make_client(config=MixpanelConfig(http_post_fn=transport))
        assert client.track("signup") is False

    def test_build_failure_is_logged_not_sent(self, make_client, transport, error_log):
        assert make_client().track("") is False
        assert transport.calls == []
        assert len(error_log.entries) == 1

    def test_import_requires_api_key(self, make_client):
        with pytest.raises(ConfigError):
            make_client().import_event("old-event")

    def test_import_uses_api_key(self, make_client, transport):
        assert make_client(api_key="secret").import_event("old-event", distinct_id="u1")
        assert transport.calls[0][0] == "https://api.mixpanel.com/import"
        assert transport.calls[0][2] == "secret"

    def test_ip_handling_and_host(self, make_client, transport):
        client = make_client(config=MixpanelConfig(
            http_post_fn=transport,
            api_host="https://api-eu.mixpanel.com/",
            ip_address_handling=IpAddressHandling.USE_REQUEST_IP,
        ))
        client.track("signup")
        assert transport.urls == ["https://api-eu.mixpanel.com/track?ip=1"]

    def test_send_json(self, make_client, transport):
        text = '[{"event":"raw","properties":{"token":"tok"}}]'
        assert make_client().send_json(MessageEndpoint.TRACK, text)
        assert decode(transport.calls[0][1]) == json.loads(text)

    def test_send_json_import_needs_api_key(self, make_client):
        with pytest.raises(ConfigError):
            make_client().send_json(MessageEndpoint.IMPORT, "[]")


class TestSend:
    def test_120_track_messages(self, make_client, transport):
        client = make_client(api_key="secret")
        messages = track_messages(client, 120)
        result = client.send(messages)
        assert result.success
        assert transport.urls == [TRACK_URL] * 3
        assert [api_key for _, _, api_key in transport.calls] == [None] * 3
        assert [len(batch) for batch in result.sent_batches] == [50, 50, 20]
        assert result.failed_batches == []
        assert decode(transport.calls[2][1]) == [m.data for m in messages[100:]]

    def test_track_batches_before_engage(self, make_client, transport):
        client = make_client()
        messages = [client.get_people_delete_message(distinct_id="u1")] + track_messages(client, 2)
        client.send(messages)
        assert transport.urls == [TRACK_URL, ENGAGE_URL]

    def test_partial_failure_keeps_groups(self, make_client):
        transport = RecordingTransport([True, False])
        client = make_client(config=MixpanelConfig(http_post_fn=transport))
        messages = track_messages(client, 60)
        result = client.send(messages)
        assert result.success is False
        assert result.sent_batches == [messages[:50]]
        assert result.failed_batches == [messages[50:]]
        sent_ids = {id(m) for batch in result.sent_batches for m in batch}
        failed_ids = {id(m) for batch in result.failed_batches for m in batch}
        assert sent_ids.isdisjoint(failed_ids)

    def test_transport_exception_fails_only_its_batch(self, make_client):
        transport = RecordingTransport([RuntimeError("boom"), True])
        client = make_client(config=MixpanelConfig(http_post_fn=transport))
        messages = track_messages(client, 1) + [client.get_people_delete_message(distinct_id="u1")]
        result = client.send(messages)
        assert not result.success
        assert result.failed_batches == [messages[:1]]
        assert result.sent_batches == [messages[1:]]

    def test_empty_send_is_vacuous_success(self, make_client, transport):
        result = make_client().send([])
        assert result.success
        assert result.sent_batches == [] and result.failed_batches == []
        assert transport.calls == []

    def test_failed_builds_fail_the_send(self, make_client, transport, error_log):
        client = make_client()
        ok = client.get_track_message("ok")
        result = client.send([client.get_track_message(""), ok])
        assert result.success is False
        assert result.dropped_messages == 1
        assert result.sent_batches == [[ok]]
        assert result.failed_batches == []
        assert len(transport.calls) == 1
        assert len(error_log.entries) == 2
        assert isinstance(error_log.entries[1][1], MessageBuildError)

    def test_serialization_failure_fails_batch_without_transport(self, make_client, transport, error_log):
        def broken(value):
            raise TypeError("nope")

        client = make_client(config=MixpanelConfig(
            http_post_fn=transport, serialize_json_fn=broken, error_log_fn=error_log,
        ))
        messages = track_messages(client, 3)
        result = client.send(messages)
        assert not result.success
        assert result.failed_batches == [messages]
        assert transport.calls == []
        assert isinstance(error_log.entries[0][1], SerializationError)


class TestSendTest:
    def test_one_entry_per_batch(self, make_client, transport):
        client = make_client()
        messages = track_messages(client, 51) + [client.get_people_delete_message(distinct_id="u1")]
        tests = client.send_test(messages)
        assert [len(test.data) for test in tests] == [50, 1, 1]
        assert all(test.ok for test in tests)
        assert decode(tests[1].base64) == [messages[50].data]
        assert json.loads(tests[2].json_text) == [messages[51].data]
        assert transport.calls == []

    def test_errors_captured(self, make_client, transport):
        def broken(value):
            raise TypeError("nope")

        client = make_client(config=MixpanelConfig(http_post_fn=transport, serialize_json_fn=broken))
        tests = client.send_test(track_messages(client, 2))
        assert len(tests) == 1
        assert isinstance(tests[0].error, TypeError)


class TestDispatcher:
    def make(self, **settings):
        return Dispatcher(ConfigResolver(MixpanelConfig(**settings)))

    def test_dispatch_returns_transport_result(self):
        transport = RecordingTransport([False])
        batch = [MixpanelMessage(kind=MessageKind.PEOPLE_DELETE, data={"$delete": ""})]
        assert self.make(http_post_fn=transport).dispatch(batch, MessageEndpoint.ENGAGE) is False
        assert transport.urls == [ENGAGE_URL]
        assert decode(transport.calls[0][1]) == [{"$delete": ""}]

    def test_serialization_errors_propagate(self):
        def broken(value):
            raise ValueError("nope")

        transport = RecordingTransport()
        dispatcher = self.make(http_post_fn=transport, serialize_json_fn=broken)
        batch = [MixpanelMessage(kind=MessageKind.TRACK, data={"event": "e"})]
        with pytest.raises(SerializationError):
            dispatcher.dispatch(batch, MessageEndpoint.TRACK)
        assert transport.calls == []

    def test_api_key_passed_through(self):
        transport = RecordingTransport()
        batch = [MixpanelMessage(kind=MessageKind.TRACK, data={"event": "e"})]
        self.make(http_post_fn=transport).dispatch(batch, MessageEndpoint.IMPORT, "secret")
        assert transport.calls[0][2] == "secret"

    def test_transport_failure_is_logged(self, caplog):
        transport = RecordingTransport([RuntimeError("boom")])
        batch = [MixpanelMessage(kind=MessageKind.TRACK, data={"event": "e"})]
        with caplog.at_level("WARNING", logger="mixpanel_client.transport.dispatch"):
            assert self.make(http_post_fn=transport).dispatch(batch, MessageEndpoint.TRACK) is False
        assert caplog.records[0].getMessage() == f"POST to {TRACK_URL} failed: boom"
        assert caplog.records[0].msg == "POST to %s failed: %s"

    def test_build_failure_logged_with_arguments(self, make_client, caplog):
        with caplog.at_level("ERROR", logger="mixpanel_client.client"):
            make_client().get_track_message("")
        assert caplog.records[0].msg == "%s %s"
        assert caplog.records[0].args[0] == "Error creating 'track' message."
