"""
Tests for SMS polling of GPS trackers
"""
import httpx
import pytest

from transport_admin.core.exceptions import MissingConfigurationError, SMSServiceError
from transport_admin.services.gps.sms_source import (
    LOCATION_COMMANDS,
    NO_RESPONSE_MESSAGE,
    LocalGatewayProvider,
    SmsLocationSource,
    TextBeltProvider,
    TwilioProvider,
    realtime_command,
)

SIM = "+919800000001"
GATEWAY = "http://gateway.local"


class FakeGateway:
    """Local SMS gateway that answers the nth location command"""

    def __init__(self, replies=None, send_status=200):
        self.replies = list(replies or [])
        self.send_status = send_status
        self.sent = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/send":
            if self.send_status != 200:
                return httpx.Response(self.send_status)
            self.sent.append(request.read().decode())
            return httpx.Response(200, json={"queued": True})
        if request.url.path == "/inbox":
            assert request.url.params["from"] == SIM
            reply = self.replies.pop(0) if self.replies else None
            return httpx.Response(200, json={"messages": [{"body": reply}] if reply else []})
        if request.url.host == "textbelt.com":
            return httpx.Response(200, json={"success": False, "error": "Out of quota"})
        return httpx.Response(404)


def make_source(gateway, providers=None):
    waits = []
    source = SmsLocationSource(
        SIM,
        providers=providers if providers is not None else [LocalGatewayProvider(GATEWAY)],
        client=httpx.Client(transport=httpx.MockTransport(gateway)),
        reply_wait_seconds=45,
        sleep=waits.append,
    )
    return source, waits


class TestProviders:

    def test_twilio_requires_all_credentials(self):
        assert not TwilioProvider("AC123", None, "+15550000000").configured
        assert TwilioProvider("AC123", "token", "+15550000000").configured

    def test_realtime_command_format(self):
        assert realtime_command(30) == "T030S***"
        assert realtime_command(120) == "T120S***"

    def test_no_configured_provider(self):
        source, _ = make_source(FakeGateway(), providers=[TwilioProvider(None, None, None)])
        with pytest.raises(MissingConfigurationError):
            source.send("where")

    def test_falls_through_to_next_provider(self):
        gateway = FakeGateway()
        source, _ = make_source(gateway, providers=[TextBeltProvider("textbelt"), LocalGatewayProvider(GATEWAY)])

        assert source.send("where") == "local_gateway"
        assert len(gateway.sent) == 1

    def test_every_provider_failing(self):
        source, _ = make_source(
            FakeGateway(send_status=500),
            providers=[TextBeltProvider("textbelt"), LocalGatewayProvider(GATEWAY)],
        )
        with pytest.raises(SMSServiceError) as exc_info:
            source.send("where")
        assert "Out of quota" in exc_info.value.message


class TestRequestLocation:

    def test_first_reply_parses(self):
        source, waits = make_source(FakeGateway(["Lat:13.0827,Lon:80.2707,Speed:12km/h"]))

        result = source.request_location()

        assert result.success
        assert result.reading.latitude == 13.0827
        assert waits == [45]

    def test_tries_next_command_after_garbage(self):
        gateway = FakeGateway(["Unknown command", "http://maps.google.com/maps?q=12.97,77.59"])
        source, waits = make_source(gateway)

        result = source.request_location()

        assert result.success
        assert len(gateway.sent) == 2
        assert LOCATION_COMMANDS[1] in gateway.sent[1]

    def test_no_reply_to_any_command(self):
        gateway = FakeGateway()
        source, waits = make_source(gateway)

        result = source.request_location()

        assert not result.success
        assert result.message == NO_RESPONSE_MESSAGE
        assert len(gateway.sent) == len(LOCATION_COMMANDS)
        assert source.fetch_locations() == []

    def test_send_failure_moves_to_next_command(self):
        gateway = FakeGateway(["Lat:13.0827,Lon:80.2707"])
        attempts = []

        class FlakyGateway(LocalGatewayProvider):
            def send(self, client, to, body):
                attempts.append(body)
                if len(attempts) == 1:
                    raise SMSServiceError("Gateway busy", phone_number=to, service_name=self.name)
                super().send(client, to, body)

        source, waits = make_source(gateway, providers=[FlakyGateway(GATEWAY)])

        result = source.request_location()

        assert result.success
        assert attempts == list(LOCATION_COMMANDS[:2])
        assert waits == [45]

    def test_every_command_failing_to_send(self):
        source, waits = make_source(FakeGateway(send_status=500))

        with pytest.raises(SMSServiceError):
            source.request_location()
        assert waits == []

    def test_enable_realtime(self):
        gateway = FakeGateway()
        source, _ = make_source(gateway)

        assert source.enable_realtime(60) == {"command": "T060S***", "provider": "local_gateway"}
        assert "T060S***" in gateway.sent[0]


class TestProbe:

    def test_probe_sends_nothing(self):
        gateway = FakeGateway()
        source, _ = make_source(gateway)

        probe = source.probe()

        assert probe.success
        assert probe.debug == {"providers": ["local_gateway"]}
        assert gateway.sent == []

    def test_probe_without_providers(self):
        source, _ = make_source(FakeGateway(), providers=[])
        assert not source.probe().success


class TestClientLifetime:

    def test_close_leaves_injected_client_open(self):
        source, _ = make_source(FakeGateway())
        source.close()
        assert not source.client.is_closed

    def test_close_releases_own_client(self):
        source = SmsLocationSource(SIM, providers=[])
        source.close()
        assert source.client.is_closed
