"""
Parser for GPS tracker SMS replies.

Three reply grammars are recognised, tried in order:

- key/value: ``Lat:13.0827,Lon:80.2707,Speed:0km/h,T:2025-01-22 12:00:00``
- map link:  ``http://maps.google.com/maps?q=13.0827,80.2707``
- bare pair: ``13.0827,80.2707``

Anything else is reported as unparseable; the parser never raises.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from transport_admin.models.base.enums import LocationSourceKind
from transport_admin.models.base.types import utcnow
from transport_admin.services.gps.location_source import ESTIMATED_ACCURACY_METERS, LocationReading

UNPARSEABLE_MESSAGE = "Could not parse location from GPS response"

_NUMBER = r"[+-]?\d+(?:\.\d+)?"
_LAT = re.compile(rf"Lat:\s*({_NUMBER})", re.IGNORECASE)
_LON = re.compile(rf"Lon:\s*({_NUMBER})", re.IGNORECASE)
_SPEED = re.compile(r"Speed:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_MAP_QUERY = re.compile(rf"[?&]q=({_NUMBER}),\s*({_NUMBER})")
_PAIR = re.compile(rf"^\s*({_NUMBER})\s*,\s*({_NUMBER})\s*$")


@dataclass
class SmsParseResult:
    success: bool
    message: str
    raw: str
    reading: Optional[LocationReading] = None


def _parse_coordinates(text: str):
    """(latitude, longitude, speed) or None."""
    lat_match, lon_match = _LAT.search(text), _LON.search(text)
    if lat_match and lon_match:
        speed_match = _SPEED.search(text)
        speed = float(speed_match.group(1)) if speed_match else 0.0
        return float(lat_match.group(1)), float(lon_match.group(1)), speed

    if "maps.google." in text:
        map_match = _MAP_QUERY.search(text)
        if map_match:
            return float(map_match.group(1)), float(map_match.group(2)), 0.0
        return None

    pair_match = _PAIR.match(text)
    if pair_match:
        return float(pair_match.group(1)), float(pair_match.group(2)), 0.0
    return None


def parse_sms_location(text: Optional[str], now: Optional[datetime] = None) -> SmsParseResult:
    """
    Parse a device reply into a reading.

    Zero or out-of-range coordinates count as a failed parse.
    """
    raw = text or ""
    coordinates = _parse_coordinates(raw.strip())
    if coordinates is None:
        return SmsParseResult(success=False, message=UNPARSEABLE_MESSAGE, raw=raw)

    latitude, longitude, speed = coordinates
    if latitude == 0 or longitude == 0 or abs(latitude) > 90 or abs(longitude) > 180:
        return SmsParseResult(success=False, message=UNPARSEABLE_MESSAGE, raw=raw)

    reading = LocationReading(
        latitude=latitude,
        longitude=longitude,
        speed=speed,
        heading=0.0,
        accuracy=ESTIMATED_ACCURACY_METERS,
        timestamp=now or utcnow(),
        source=LocationSourceKind.SMS,
        raw=raw,
    )
    return SmsParseResult(success=True, message="Location parsed successfully", raw=raw, reading=reading)
