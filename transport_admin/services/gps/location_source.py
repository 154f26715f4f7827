"""
Common capability for anything that produces device location readings.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from transport_admin.models.base.enums import LocationSourceKind

# Estimated accuracy in metres for sources that do not report one
ESTIMATED_ACCURACY_METERS = 10.0


@dataclass
class LocationReading:
    """Canonical location reading produced by every source."""

    latitude: float
    longitude: float
    timestamp: datetime
    source: LocationSourceKind
    speed: float = 0.0
    heading: float = 0.0
    accuracy: Optional[float] = None
    external_id: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    raw: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["source"] = self.source.value
        data.pop("raw")
        return data


@dataclass
class ProbeResult:
    """Outcome of a connectivity probe."""

    success: bool
    message: str
    readings: List[LocationReading] = field(default_factory=list)
    debug: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [reading.to_dict() for reading in self.readings],
            "debug": self.debug,
        }


class LocationSource(ABC):
    """A source of location readings (vendor API, SMS device, manual entry)."""

    kind: LocationSourceKind

    @abstractmethod
    def probe(self) -> ProbeResult:
        """Check that the source is reachable and usable."""

    @abstractmethod
    def fetch_locations(self) -> List[LocationReading]:
        """Current readings from the source."""
