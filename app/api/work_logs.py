"""
Work Log Routes Blueprint

- /api/work-logs: Create a work log
- /api/work-logs/<id>: Update or delete a work log
- /api/service-calls/<id>/work-logs: Work logs for a call, newest first
"""

import logging
from flask import Blueprint, request, jsonify

from validators import ValidationError

logger = logging.getLogger(__name__)

# Create blueprint
work_logs_bp = Blueprint('work_logs_bp', __name__)


@work_logs_bp.route('/api/work-logs', methods=['POST'])
def create_work_log():
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service, get_json_body
        from services.call_service import ServiceCallNotFoundError

        with get_db_session() as session:
            try:
                log = build_call_service(session).create_work_log(get_json_body())
            except ServiceCallNotFoundError as e:
                return jsonify({'success': False, 'error': str(e)}), 404
            return jsonify({'success': True, 'workLog': log}), 201

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error creating work log: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@work_logs_bp.route('/api/service-calls/<call_id>/work-logs', methods=['GET'])
def get_call_work_logs(call_id):
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service

        with get_db_session() as session:
            logs = build_call_service(session).get_work_logs(call_id)
            return jsonify({'success': True, 'workLogs': logs, 'count': len(logs)})

    except Exception as e:
        logger.error(f"Error getting work logs for call {call_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@work_logs_bp.route('/api/work-logs/<log_id>', methods=['PUT', 'PATCH', 'DELETE'])
def handle_work_log(log_id):
    """Update or delete a work log."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service, get_json_body
        from services.call_service import WorkLogNotFoundError

        with get_db_session() as session:
            service = build_call_service(session)

            if request.method == 'DELETE':
                if service.delete_work_log(log_id):
                    return jsonify({'success': True})
                return jsonify({'success': False, 'error': 'Work log not found'}), 404

            try:
                log = service.update_work_log(log_id, get_json_body())
            except WorkLogNotFoundError as e:
                return jsonify({'success': False, 'error': str(e)}), 404
            return jsonify({'success': True, 'workLog': log})

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error handling work log {log_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
