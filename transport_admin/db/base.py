"""SQLAlchemy Base with every model registered (importing models registers the tables)."""
from transport_admin.models import Base

__all__ = ["Base"]
