"""
Database package for the Service Call Manager.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure,
    get_db_session,
    init_db,
    check_db_connection,
    is_db_configured
)

from database.models import (
    ServiceCall,
    WorkLog,
    Notification,
    CALL_STATUSES,
    ACTIVE_STATUSES,
    CALL_TYPES
)

__all__ = [
    # Connection
    'Base',
    'configure',
    'get_db_session',
    'init_db',
    'check_db_connection',
    'is_db_configured',
    # Models
    'ServiceCall',
    'WorkLog',
    'Notification',
    'CALL_STATUSES',
    'ACTIVE_STATUSES',
    'CALL_TYPES'
]
