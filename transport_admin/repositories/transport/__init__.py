from transport_admin.repositories.transport.gps_repository import (
    GpsDeviceRepository,
    GpsLocationHistoryRepository,
    VehicleRepository,
)
from transport_admin.repositories.transport.transport_repository import (
    AdminUserRepository,
    StudentRepository,
)

__all__ = [
    "AdminUserRepository",
    "GpsDeviceRepository",
    "GpsLocationHistoryRepository",
    "StudentRepository",
    "VehicleRepository",
]
