"""
MERCYDA vendor GPS API client.

The vendor's login format is not documented, so the connectivity probe tries
the configured auth method first and then ``json``, ``form``, ``basic`` and
``query``. The first method and vehicle endpoint that work are remembered on
the instance and tried first by later fetches. The application keeps one
instance for its lifetime, so a successful probe carries over to syncs.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from transport_admin.config.settings import settings
from transport_admin.core.exceptions import GPSVendorError, MissingConfigurationError
from transport_admin.models.base.enums import LocationSourceKind
from transport_admin.models.base.types import utcnow
from transport_admin.services.gps.location_source import (
    ESTIMATED_ACCURACY_METERS,
    LocationReading,
    LocationSource,
    ProbeResult,
)

logger = logging.getLogger(__name__)

AUTH_METHODS = ("json", "form", "basic", "query")
TOKEN_KEYS = ("token", "access_token", "authToken", "sessionToken", "jwt", "accessToken", "auth_token")
VEHICLE_LIST_KEYS = ("vehicles", "data", "devices", "result")
ALTERNATIVE_VEHICLE_ENDPOINTS = ("/vehicles", "/tracking/vehicles", "/api/vehicles", "/gps/vehicles", "/devices")
USER_AGENT = "transport-admin-gps-client/1.0"

_datetime_adapter = TypeAdapter(datetime)


# -----------------------------------------------------------------------------
# Payload normalization
# -----------------------------------------------------------------------------

def first_present(record: Dict[str, Any], *paths: str) -> Any:
    """First truthy value among dotted ``paths`` (``location.lat``)."""
    for path in paths:
        value: Any = record
        for part in path.split("."):
            value = value.get(part) if isinstance(value, dict) else None
            if value is None:
                break
        if value not in (None, ""):
            return value
    return None


def _as_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _as_timestamp(value: Any, now: datetime) -> datetime:
    if value is None:
        return now
    try:
        return _datetime_adapter.validate_python(value)
    except PydanticValidationError:
        return now


def extract_vehicle_list(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        for key in VEHICLE_LIST_KEYS:
            if isinstance(payload.get(key), list):
                return [item for item in payload[key] if isinstance(item, dict)]
    return []


def normalize_vehicle(record: Dict[str, Any], now: Optional[datetime] = None) -> LocationReading:
    """Map one vendor record onto a reading; missing numbers become 0."""
    now = now or utcnow()
    external_id = first_present(record, "id", "vehicleId", "vehicle_id", "device_id")
    return LocationReading(
        latitude=_as_float(first_present(record, "latitude", "lat", "location.lat", "location.latitude")),
        longitude=_as_float(
            first_present(record, "longitude", "lng", "lon", "location.lng", "location.longitude")
        ),
        speed=_as_float(first_present(record, "speed", "velocity")),
        heading=_as_float(first_present(record, "heading", "direction", "course", "bearing")),
        accuracy=ESTIMATED_ACCURACY_METERS,
        timestamp=_as_timestamp(first_present(record, "timestamp", "last_update", "updated_at"), now),
        source=LocationSourceKind.VENDOR,
        external_id=str(external_id) if external_id is not None else None,
        name=first_present(record, "name", "vehicleName", "vehicle_name", "device_name") or "Unknown Vehicle",
        status=first_present(record, "status", "state") or "unknown",
        raw=record,
    )


def extract_token(response: httpx.Response) -> Optional[str]:
    """Token from a JSON body, or the raw body when it is not JSON."""
    try:
        data = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None
    if isinstance(data, dict):
        for key in TOKEN_KEYS:
            if data.get(key):
                return str(data[key])
        logger.warning(f"Vendor auth response carried no token; keys: {sorted(data)}")
    return None


# -----------------------------------------------------------------------------
# Source
# -----------------------------------------------------------------------------

class VendorLocationSource(LocationSource):
    """HTTP pull of vehicle positions from the MERCYDA console API."""

    kind = LocationSourceKind.VENDOR

    def __init__(
        self,
        base_url: str,
        username: Optional[str],
        password: Optional[str],
        auth_endpoint: str = "/api/auth/login",
        vehicle_endpoint: str = "/api/vehicles",
        auth_method: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.auth_endpoint = auth_endpoint
        self.vehicle_endpoint = vehicle_endpoint
        self.configured_auth_method = auth_method
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

        self.working_auth_method: Optional[str] = None
        self.working_vehicle_endpoint: Optional[str] = None

    @classmethod
    def from_settings(cls, client: Optional[httpx.Client] = None) -> "VendorLocationSource":
        return cls(
            base_url=settings.MERCYDA_BASE_URL,
            username=settings.MERCYDA_USERNAME,
            password=settings.MERCYDA_PASSWORD,
            auth_endpoint=settings.MERCYDA_AUTH_ENDPOINT,
            vehicle_endpoint=settings.MERCYDA_VEHICLE_ENDPOINT,
            auth_method=settings.MERCYDA_AUTH_METHOD,
            timeout=settings.GPS_HTTP_TIMEOUT_SECONDS,
            client=client,
        )

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, headers={"User-Agent": USER_AGENT})
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def _require_credentials(self) -> None:
        if not self.username or not self.password:
            raise MissingConfigurationError(
                "MERCYDA credentials not configured",
                config_key="MERCYDA_USERNAME",
            )

    def auth_order(self) -> List[str]:
        """Configured method first, then the remaining known methods."""
        order = [self.configured_auth_method] if self.configured_auth_method in AUTH_METHODS else []
        order.extend(method for method in AUTH_METHODS if method not in order)
        return order

    # ---- authentication ---------------------------------------------------

    def authenticate(self, method: str) -> Optional[str]:
        """Log in with one auth method; None when the vendor refuses it."""
        url = f"{self.base_url}{self.auth_endpoint}"
        credentials = {"username": self.username, "password": self.password}
        try:
            if method == "json":
                response = self.client.post(url, json=credentials)
            elif method == "form":
                response = self.client.post(url, data=credentials)
            elif method == "basic":
                response = self.client.post(url, auth=(self.username, self.password))
            elif method == "query":
                response = self.client.get(url, params=credentials)
            else:
                raise ValueError(f"Unknown auth method: {method}")
        except httpx.HTTPError as e:
            logger.warning(f"Vendor authentication ({method}) failed to connect: {e}")
            return None

        if not response.is_success:
            logger.info(f"Vendor authentication ({method}) rejected with {response.status_code}")
            return None
        return extract_token(response)

    # ---- vehicles ----------------------------------------------------------

    def _vehicle_endpoints(self) -> List[str]:
        if self.working_vehicle_endpoint:
            return [self.working_vehicle_endpoint]
        endpoints = [self.vehicle_endpoint]
        endpoints.extend(e for e in ALTERNATIVE_VEHICLE_ENDPOINTS if e not in endpoints)
        return endpoints

    def fetch_vehicles(self, token: str, now: Optional[datetime] = None) -> List[LocationReading]:
        """
        Vehicle readings with a usable position.

        Raises:
            GPSVendorError: When no vehicle endpoint answers
        """
        headers = {"Authorization": f"Bearer {token}"}
        for endpoint in self._vehicle_endpoints():
            try:
                response = self.client.get(f"{self.base_url}{endpoint}", headers=headers)
            except httpx.HTTPError as e:
                logger.warning(f"Vendor endpoint {endpoint} unreachable: {e}")
                continue
            if not response.is_success:
                logger.debug(f"Vendor endpoint {endpoint} returned {response.status_code}")
                continue
            try:
                payload = response.json()
            except ValueError:
                logger.warning(f"Vendor endpoint {endpoint} returned a non-JSON body")
                continue

            self.working_vehicle_endpoint = endpoint
            readings = [normalize_vehicle(record, now) for record in extract_vehicle_list(payload)]
            return [r for r in readings if r.latitude and r.longitude]

        self.working_vehicle_endpoint = None
        raise GPSVendorError("No vendor vehicle endpoint responded", endpoint=self.vehicle_endpoint)

    # ---- LocationSource ----------------------------------------------------

    def probe(self) -> ProbeResult:
        """Try each auth method in turn and keep the first that works."""
        self._require_credentials()
        debug: Dict[str, Any] = {
            "config": {
                "baseUrl": self.base_url,
                "authEndpoint": self.auth_endpoint,
                "vehicleEndpoint": self.vehicle_endpoint,
                "authMethod": self.configured_auth_method,
            },
            "steps": [],
        }

        for method in self.auth_order():
            debug["steps"].append(f"Authenticating with {method}")
            token = self.authenticate(method)
            if not token:
                debug["steps"].append(f"{method} authentication failed")
                continue

            try:
                readings = self.fetch_vehicles(token)
            except GPSVendorError as e:
                debug["steps"].append(f"Vehicle fetch failed: {e.message}")
                return ProbeResult(False, f"Connection test failed: {e.message}", debug=debug)

            self.working_auth_method = method
            debug["steps"].append(f"Found {len(readings)} vehicles")
            debug["working"] = {"authMethod": method, "vehicleEndpoint": self.working_vehicle_endpoint}
            logger.info(f"Vendor probe succeeded with {method} auth at {self.working_vehicle_endpoint}")
            return ProbeResult(
                True,
                f"Successfully connected to MERCYDA. Found {len(readings)} vehicles.",
                readings=readings,
                debug=debug,
            )

        return ProbeResult(
            False,
            "Authentication failed. Check credentials and endpoint configuration.",
            debug=debug,
        )

    def login(self) -> str:
        """
        Token from the remembered auth method, falling back to the others.

        The method that succeeds is remembered for the next call.
        """
        order = self.auth_order()
        if self.working_auth_method:
            order.remove(self.working_auth_method)
            order.insert(0, self.working_auth_method)

        for method in order:
            token = self.authenticate(method)
            if token:
                if method != self.working_auth_method:
                    logger.info(f"Vendor auth method is now {method}")
                self.working_auth_method = method
                return token

        self.working_auth_method = None
        raise GPSVendorError("Failed to authenticate with MERCYDA service", endpoint=self.auth_endpoint)

    def fetch_locations(self) -> List[LocationReading]:
        """
        One authenticated fetch, reusing the method and endpoint already found.

        Raises:
            MissingConfigurationError: Credentials are not configured
            GPSVendorError: Authentication or vehicle fetch failed
        """
        self._require_credentials()
        return self.fetch_vehicles(self.login())


def match_vendor_vehicle(
    device_name: str,
    notes: Optional[str],
    readings: Iterable[LocationReading],
) -> Optional[LocationReading]:
    """Vendor reading whose name contains the device name or whose id is in the notes."""
    name = (device_name or "").lower()
    for reading in readings:
        if name and name in (reading.name or "").lower():
            return reading
        if notes and reading.external_id and reading.external_id in notes:
            return reading
    return None
