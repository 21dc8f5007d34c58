"""
Services package for the Service Call Manager.
Contains the repositories and the business services built on them.
"""

from services.service_call_repository import ServiceCallRepository
from services.work_log_repository import WorkLogRepository
from services.notification_service import NotificationService

__all__ = [
    'ServiceCallRepository',
    'WorkLogRepository',
    'NotificationService'
]
