"""
SMS polling of GPS trackers.

A command is sent to the device's SIM through the first SMS provider that
accepts it (Twilio, then the local gateway, then TextBelt). Trackers answer
asynchronously; after a fixed wait the local gateway inbox is checked for the
reply. Replies may also arrive through the inbound webhook instead.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from transport_admin.config.settings import settings
from transport_admin.core.exceptions import MissingConfigurationError, SMSServiceError
from transport_admin.models.base.enums import LocationSourceKind
from transport_admin.services.gps.location_source import LocationReading, LocationSource, ProbeResult
from transport_admin.services.gps.sms_parser import SmsParseResult, parse_sms_location

logger = logging.getLogger(__name__)

# Location request commands understood by common tracker models, tried in order
LOCATION_COMMANDS = ("where", "location", "loc", "position", "G123456#", "pos")

NO_RESPONSE_MESSAGE = "No location response received from GPS device"

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
TEXTBELT_URL = "https://textbelt.com/text"


def realtime_command(interval_seconds: int) -> str:
    """Periodic upload command, e.g. ``T030S***`` for 30 seconds."""
    return f"T{interval_seconds:03d}S***"


# -----------------------------------------------------------------------------
# Providers
# -----------------------------------------------------------------------------

class SmsProvider:
    """One outbound SMS channel."""

    name = "provider"

    @property
    def configured(self) -> bool:
        return True

    def send(self, client: httpx.Client, to: str, body: str) -> None:
        """
        Raises:
            SMSServiceError: When the provider does not accept the message
        """
        raise NotImplementedError


class TwilioProvider(SmsProvider):
    name = "twilio"

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str], from_number: Optional[str]):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send(self, client: httpx.Client, to: str, body: str) -> None:
        response = client.post(
            TWILIO_MESSAGES_URL.format(sid=self.account_sid),
            auth=(self.account_sid, self.auth_token),
            data={"To": to, "From": self.from_number, "Body": body},
        )
        if not response.is_success:
            raise SMSServiceError(
                f"Twilio SMS send failed with {response.status_code}",
                phone_number=to,
                service_name=self.name,
            )


class LocalGatewayProvider(SmsProvider):
    """HTTP front of a USB modem / SMS server on the local network."""

    name = "local_gateway"

    def __init__(self, base_url: Optional[str]):
        self.base_url = base_url.rstrip("/") if base_url else None

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def send(self, client: httpx.Client, to: str, body: str) -> None:
        response = client.post(f"{self.base_url}/send", json={"to": to, "message": body})
        if not response.is_success:
            raise SMSServiceError(
                f"Local gateway SMS send failed with {response.status_code}",
                phone_number=to,
                service_name=self.name,
            )

    def latest_reply(self, client: httpx.Client, sender: str) -> Optional[str]:
        """Most recent inbox message from ``sender``, if any."""
        response = client.get(f"{self.base_url}/inbox", params={"from": sender})
        if not response.is_success:
            logger.warning(f"Local gateway inbox returned {response.status_code}")
            return None
        payload = response.json()
        messages = payload.get("messages", []) if isinstance(payload, dict) else payload
        for message in reversed(messages or []):
            if isinstance(message, dict):
                text = message.get("body") or message.get("message") or message.get("text")
            else:
                text = message
            if text:
                return str(text)
        return None


class TextBeltProvider(SmsProvider):
    name = "textbelt"

    def __init__(self, api_key: str):
        self.api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, client: httpx.Client, to: str, body: str) -> None:
        response = client.post(TEXTBELT_URL, json={"phone": to, "message": body, "key": self.api_key})
        try:
            result: Dict[str, Any] = response.json()
        except ValueError:
            result = {}
        if not result.get("success"):
            raise SMSServiceError(
                f"TextBelt error: {result.get('error', response.status_code)}",
                phone_number=to,
                service_name=self.name,
            )


def default_providers() -> List[SmsProvider]:
    return [
        TwilioProvider(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER),
        LocalGatewayProvider(settings.LOCAL_SMS_GATEWAY_URL),
        TextBeltProvider(settings.TEXTBELT_API_KEY),
    ]


# -----------------------------------------------------------------------------
# Source
# -----------------------------------------------------------------------------

class SmsLocationSource(LocationSource):
    """Location source for one tracker reached through its SIM number."""

    kind = LocationSourceKind.SMS

    def __init__(
        self,
        sim_number: str,
        providers: Optional[List[SmsProvider]] = None,
        client: Optional[httpx.Client] = None,
        reply_wait_seconds: float = 45.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sim_number = sim_number
        self.providers = providers if providers is not None else default_providers()
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=settings.SMS_HTTP_TIMEOUT_SECONDS)
        self.reply_wait_seconds = reply_wait_seconds
        self.sleep = sleep

    @classmethod
    def from_settings(cls, sim_number: str, client: Optional[httpx.Client] = None) -> "SmsLocationSource":
        return cls(sim_number, client=client, reply_wait_seconds=settings.SMS_REPLY_WAIT_SECONDS)

    def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            self.client.close()

    @property
    def configured_providers(self) -> List[SmsProvider]:
        return [p for p in self.providers if p.configured]

    def send(self, command: str) -> str:
        """
        Send ``command`` through the first provider that accepts it.

        Returns:
            Name of the provider used

        Raises:
            MissingConfigurationError: No provider is configured
            SMSServiceError: Every configured provider failed
        """
        providers = self.configured_providers
        if not providers:
            raise MissingConfigurationError("No SMS provider configured", config_key="TWILIO_ACCOUNT_SID")

        errors = []
        for provider in providers:
            try:
                provider.send(self.client, self.sim_number, command)
            except SMSServiceError as e:
                errors.append(e.message)
                continue
            except httpx.HTTPError as e:
                errors.append(f"{provider.name} error: {e}")
                continue
            logger.info(f"SMS command '{command}' sent to {self.sim_number} via {provider.name}")
            return provider.name

        raise SMSServiceError(
            f"SMS send failed: {'; '.join(errors)}",
            phone_number=self.sim_number,
        )

    def await_reply(self) -> Optional[str]:
        """Wait for the tracker, then look for its reply in the gateway inbox."""
        self.sleep(self.reply_wait_seconds)
        for provider in self.configured_providers:
            if isinstance(provider, LocalGatewayProvider):
                try:
                    return provider.latest_reply(self.client, self.sim_number)
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning(f"Local gateway inbox unreadable: {e}")
                    return None
        return None

    def request_location(self) -> SmsParseResult:
        """
        Try each location command until a reply parses.

        A command that cannot be sent is skipped. Send failures are raised
        only when no command could be sent; unparseable or missing replies
        are never raised.
        """
        last_reply = ""
        send_errors: List[SMSServiceError] = []
        for command in LOCATION_COMMANDS:
            try:
                self.send(command)
            except SMSServiceError as e:
                logger.warning(f"Location command '{command}' not sent to {self.sim_number}: {e.message}")
                send_errors.append(e)
                continue
            reply = self.await_reply()
            if reply is None:
                continue
            last_reply = reply
            result = parse_sms_location(reply)
            if result.success:
                return result
            logger.info(f"Unparseable reply to '{command}' from {self.sim_number}: {reply!r}")
        if len(send_errors) == len(LOCATION_COMMANDS):
            raise send_errors[-1]
        return SmsParseResult(success=False, message=NO_RESPONSE_MESSAGE, raw=last_reply)

    def enable_realtime(self, interval_seconds: int = 30) -> Dict[str, str]:
        command = realtime_command(interval_seconds)
        provider = self.send(command)
        return {"command": command, "provider": provider}

    # ---- LocationSource ----------------------------------------------------

    def probe(self) -> ProbeResult:
        """Report provider configuration without sending anything."""
        names = [p.name for p in self.configured_providers]
        if not names:
            return ProbeResult(False, "No SMS provider configured")
        return ProbeResult(True, f"SMS providers available: {', '.join(names)}", debug={"providers": names})

    def fetch_locations(self) -> List[LocationReading]:
        result = self.request_location()
        return [result.reading] if result.success and result.reading else []
