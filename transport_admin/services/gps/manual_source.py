"""
Administrative location entry.
"""

from datetime import datetime
from typing import List, Optional

from transport_admin.core.exceptions import ValidationError
from transport_admin.models.base.enums import LocationSourceKind
from transport_admin.models.base.types import utcnow
from transport_admin.services.gps.location_source import LocationReading, LocationSource, ProbeResult

INVALID_COORDINATES_MESSAGE = "Invalid GPS coordinates"


def valid_coordinates(latitude: float, longitude: float) -> bool:
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


class ManualLocationSource(LocationSource):
    """A single reading typed in by an admin."""

    kind = LocationSourceKind.MANUAL

    def __init__(
        self,
        latitude: float,
        longitude: float,
        speed: Optional[float] = None,
        heading: Optional[float] = None,
        accuracy: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ):
        if not valid_coordinates(latitude, longitude):
            raise ValidationError(
                INVALID_COORDINATES_MESSAGE,
                field_errors={"latitude": ["must be between -90 and 90"], "longitude": ["must be between -180 and 180"]},
            )
        self.reading = LocationReading(
            latitude=latitude,
            longitude=longitude,
            speed=speed or 0.0,
            heading=heading or 0.0,
            accuracy=accuracy,
            timestamp=timestamp or utcnow(),
            source=self.kind,
        )

    def probe(self) -> ProbeResult:
        return ProbeResult(True, "Manual reading accepted", readings=[self.reading])

    def fetch_locations(self) -> List[LocationReading]:
        return [self.reading]
