"""
Configuration package for the transport administration backend.

Contains environment settings and database connection management.
"""

from transport_admin.config.settings import settings, get_settings
from transport_admin.config.database import get_db_session, get_db_context

__all__ = ['settings', 'get_settings', 'get_db_session', 'get_db_context']
