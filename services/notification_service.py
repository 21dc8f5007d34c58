"""
Notification Service - Manages in-app alerts.

This service handles:
- Creating notifications (stale call alerts, automation failures)
- Listing and counting unread notifications
- Marking notifications as read
- Cleaning up old read notifications
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from database.models import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for managing notifications."""

    def __init__(self, session):
        self.session = session

    def create_notification(self, title: str, message: str,
                            notification_type: str = 'info',
                            priority: str = 'normal',
                            entity_type: str = None,
                            entity_id: str = None,
                            metadata: Dict = None) -> Optional[Dict]:
        """
        Create a new notification.

        Args:
            title: Notification title
            message: Notification message
            notification_type: Type (info, warning, alert, stale_call)
            priority: Priority level (low, normal, high, urgent)
            entity_type: Related entity type
            entity_id: Related entity ID
            metadata: Additional data

        Returns:
            Created notification dict or None on failure
        """
        try:
            notification = Notification(
                title=title,
                message=message,
                notification_type=notification_type,
                priority=priority,
                entity_type=entity_type,
                entity_id=entity_id,
                extra_data=metadata or {},
                is_read=False,
                created_at=datetime.utcnow()
            )

            self.session.add(notification)
            self.session.flush()

            logger.info(f"Created notification: {title}")
            return notification.to_dict()

        except SQLAlchemyError as e:
            logger.error(f"Error creating notification: {e}")
            return None

    def create_or_refresh_notification(self, title: str, message: str,
                                       notification_type: str,
                                       entity_type: str,
                                       entity_id: str,
                                       priority: str = 'normal',
                                       metadata: Dict = None) -> Optional[Dict]:
        """
        Create a notification for an entity, or refresh the unread one of the
        same type already raised for it.

        The refreshed notification keeps its id and creation time. Only the
        message and metadata change.
        """
        try:
            existing = self.session.query(Notification).filter(
                Notification.notification_type == notification_type,
                Notification.entity_type == entity_type,
                Notification.entity_id == entity_id,
                Notification.is_read == False  # noqa: E712
            ).order_by(Notification.created_at.desc()).first()
        except SQLAlchemyError as e:
            logger.error(f"Error looking up notification for {entity_type} {entity_id}: {e}")
            return None

        if existing is None:
            return self.create_notification(
                title=title,
                message=message,
                notification_type=notification_type,
                priority=priority,
                entity_type=entity_type,
                entity_id=entity_id,
                metadata=metadata
            )

        existing.title = title
        existing.message = message
        existing.extra_data = metadata or {}
        self.session.flush()

        logger.debug(f"Refreshed notification {existing.id} for {entity_type} {entity_id}")
        return existing.to_dict()

    def get_notifications(self, unread_only: bool = False, limit: int = 50) -> List[Dict]:
        """Get notifications, newest first."""
        try:
            query = self.session.query(Notification)

            if unread_only:
                query = query.filter(Notification.is_read == False)  # noqa: E712

            notifications = query.order_by(
                Notification.created_at.desc()
            ).limit(limit).all()

            return [n.to_dict() for n in notifications]

        except SQLAlchemyError as e:
            logger.error(f"Error getting notifications: {e}")
            return []

    def get_unread_count(self) -> int:
        """Get count of unread notifications."""
        try:
            return self.session.query(func.count(Notification.id)).filter(
                Notification.is_read == False  # noqa: E712
            ).scalar() or 0

        except SQLAlchemyError as e:
            logger.error(f"Error getting unread count: {e}")
            return 0

    def mark_as_read(self, notification_id: str) -> bool:
        """Mark a notification as read."""
        notification = self.session.query(Notification).filter(
            Notification.id == notification_id
        ).first()

        if not notification:
            return False

        notification.is_read = True
        notification.read_at = datetime.utcnow()
        self.session.flush()
        return True

    def mark_all_as_read(self) -> int:
        """Mark every unread notification as read."""
        now = datetime.utcnow()
        count = 0
        for notification in self.session.query(Notification).filter(
            Notification.is_read == False  # noqa: E712
        ).all():
            notification.is_read = True
            notification.read_at = now
            count += 1

        self.session.flush()
        return count

    def delete_notification(self, notification_id: str) -> bool:
        """Delete a notification."""
        notification = self.session.query(Notification).filter(
            Notification.id == notification_id
        ).first()

        if not notification:
            return False

        self.session.delete(notification)
        self.session.flush()
        return True

    def cleanup_old_notifications(self, days: int = 30) -> int:
        """Delete read notifications older than specified days."""
        cutoff = datetime.utcnow() - timedelta(days=days)

        count = self.session.query(Notification).filter(
            Notification.is_read == True,  # noqa: E712
            Notification.created_at < cutoff
        ).delete(synchronize_session=False)
        self.session.flush()

        return count
