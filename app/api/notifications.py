"""
Notification Routes Blueprint

In-app alerts (stale call warnings and the like):
- /api/notifications: List or create notifications
- /api/notifications/<id>/read: Mark one as read
- /api/notifications/read-all: Mark all as read
- /api/notifications/<id>: Delete a notification
"""

import logging
from flask import Blueprint, request, jsonify

from database.models import NOTIFICATION_PRIORITIES

logger = logging.getLogger(__name__)

# Create blueprint
notifications_bp = Blueprint('notifications_bp', __name__)


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@notifications_bp.route('/api/notifications', methods=['GET', 'POST'])
def handle_notifications():
    """Get notifications or create a new notification."""
    try:
        from database.connection import get_db_session
        from services.notification_service import NotificationService

        with get_db_session() as session:
            service = NotificationService(session)

            if request.method == 'GET':
                unread_only = request.args.get('unread_only') == 'true'
                limit = request.args.get('limit', 50, type=int)

                return jsonify({
                    'success': True,
                    'notifications': service.get_notifications(unread_only=unread_only, limit=limit),
                    'unreadCount': service.get_unread_count()
                })

            data = request.get_json(silent=True) or {}
            if not data.get('title'):
                return jsonify({'success': False, 'error': 'title is required'}), 400
            priority = data.get('priority', 'normal')
            if priority not in NOTIFICATION_PRIORITIES:
                return jsonify({'success': False, 'error': f'Invalid priority: {priority}'}), 400

            notification = service.create_notification(
                title=data['title'],
                message=data.get('message', ''),
                notification_type=data.get('type', 'info'),
                priority=priority,
                entity_type=data.get('entityType'),
                entity_id=data.get('entityId'),
                metadata=data.get('metadata')
            )

            if notification:
                return jsonify({'success': True, 'notification': notification}), 201
            return jsonify({'success': False, 'error': 'Failed to create notification'}), 400

    except Exception as e:
        logger.error(f"Error handling notifications: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@notifications_bp.route('/api/notifications/<notification_id>/read', methods=['POST'])
def mark_notification_read(notification_id):
    """Mark a notification as read."""
    try:
        from database.connection import get_db_session
        from services.notification_service import NotificationService

        with get_db_session() as session:
            if NotificationService(session).mark_as_read(notification_id):
                return jsonify({'success': True})
            return jsonify({'success': False, 'error': 'Notification not found'}), 404

    except Exception as e:
        logger.error(f"Error marking notification as read: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@notifications_bp.route('/api/notifications/read-all', methods=['POST'])
def mark_all_notifications_read():
    """Mark all notifications as read."""
    try:
        from database.connection import get_db_session
        from services.notification_service import NotificationService

        with get_db_session() as session:
            count = NotificationService(session).mark_all_as_read()
            return jsonify({'success': True, 'count': count})

    except Exception as e:
        logger.error(f"Error marking all notifications as read: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@notifications_bp.route('/api/notifications/<notification_id>', methods=['DELETE'])
def delete_notification(notification_id):
    """Delete a notification."""
    try:
        from database.connection import get_db_session
        from services.notification_service import NotificationService

        with get_db_session() as session:
            if NotificationService(session).delete_notification(notification_id):
                return jsonify({'success': True})
            return jsonify({'success': False, 'error': 'Notification not found'}), 404

    except Exception as e:
        logger.error(f"Error deleting notification: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
