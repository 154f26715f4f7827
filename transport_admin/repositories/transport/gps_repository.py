"""
GPS device, vehicle and location history repositories.
"""

from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from transport_admin.models.transport.gps_device import GpsDevice
from transport_admin.models.transport.gps_location_history import GpsLocationHistory
from transport_admin.models.transport.vehicle import Vehicle
from transport_admin.repositories.base.base_repository import BaseRepository


class GpsDeviceRepository(BaseRepository[GpsDevice]):

    def __init__(self, session: Session):
        super().__init__(GpsDevice, session)

    def find_by_device_id(self, device_id: str) -> Optional[GpsDevice]:
        """Look up by internal id or external device identifier."""
        return (
            self.db.query(GpsDevice)
            .options(joinedload(GpsDevice.vehicle))
            .filter((GpsDevice.id == device_id) | (GpsDevice.device_id == device_id))
            .first()
        )

    def find_by_sim_number(self, sim_number: str) -> Optional[GpsDevice]:
        return (
            self.db.query(GpsDevice)
            .options(joinedload(GpsDevice.vehicle))
            .filter(GpsDevice.sim_number == sim_number)
            .first()
        )

    def find_vendor_managed(self, vendor_marker: str) -> List[GpsDevice]:
        """Active devices whose notes mention the vendor (case-insensitive)."""
        return (
            self.db.query(GpsDevice)
            .options(joinedload(GpsDevice.vehicle))
            .filter(
                GpsDevice.is_active.is_(True),
                GpsDevice.notes.ilike(f"%{vendor_marker}%"),
            )
            .all()
        )


class VehicleRepository(BaseRepository[Vehicle]):

    def __init__(self, session: Session):
        super().__init__(Vehicle, session)

    def find_by_device(self, gps_device_id: str) -> Optional[Vehicle]:
        return self.db.query(Vehicle).filter(Vehicle.gps_device_id == gps_device_id).first()

    def find_tracked(self) -> List[Vehicle]:
        """Vehicles with a fitted device, ordered by registration."""
        return (
            self.db.query(Vehicle)
            .options(joinedload(Vehicle.gps_device), joinedload(Vehicle.route))
            .filter(Vehicle.gps_device_id.isnot(None))
            .order_by(Vehicle.registration_number.asc())
            .all()
        )


class GpsLocationHistoryRepository(BaseRepository[GpsLocationHistory]):

    def __init__(self, session: Session):
        super().__init__(GpsLocationHistory, session)

    def find_recent(self, vehicle_id: str, limit: int = 50) -> List[GpsLocationHistory]:
        return (
            self.db.query(GpsLocationHistory)
            .filter(GpsLocationHistory.vehicle_id == vehicle_id)
            .order_by(GpsLocationHistory.recorded_at.desc())
            .limit(limit)
            .all()
        )
