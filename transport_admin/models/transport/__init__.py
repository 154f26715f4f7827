from transport_admin.models.transport.admin_user import AdminUser
from transport_admin.models.transport.gps_device import GpsDevice
from transport_admin.models.transport.gps_location_history import GpsLocationHistory
from transport_admin.models.transport.route import Route
from transport_admin.models.transport.student import Student
from transport_admin.models.transport.vehicle import Vehicle

__all__ = ["AdminUser", "GpsDevice", "GpsLocationHistory", "Route", "Student", "Vehicle"]
