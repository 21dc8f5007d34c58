"""
Service Call Routes Blueprint

Handles service call records:
- /api/service-calls: List (optionally by status) or create
- /api/service-calls/<id>: Get, update or delete one call
- /api/service-calls/stats: Counts per status
- /api/service-calls/today: Today's calls
- /api/service-calls/fix-statuses: Re-derive statuses from scheduled times
"""

import logging
from flask import Blueprint, request, jsonify

from validators import ValidationError

logger = logging.getLogger(__name__)

# Create blueprint
service_calls_bp = Blueprint('service_calls_bp', __name__)


@service_calls_bp.route('/api/service-calls', methods=['GET', 'POST'])
def handle_service_calls():
    """List service calls or create a new one."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service, get_json_body

        with get_db_session() as session:
            service = build_call_service(session)

            if request.method == 'GET':
                status = request.args.get('status')
                calls = service.get_calls_by_status(status) if status else service.get_all_service_calls()
                return jsonify({'success': True, 'serviceCalls': calls, 'count': len(calls)})

            call = service.create_service_call(get_json_body())
            return jsonify({'success': True, 'serviceCall': call}), 201

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error handling service calls: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@service_calls_bp.route('/api/service-calls/stats', methods=['GET'])
def get_service_call_stats():
    """Counts per status plus today's total."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service

        with get_db_session() as session:
            return jsonify({'success': True, 'stats': build_call_service(session).get_stats()})

    except Exception as e:
        logger.error(f"Error getting service call stats: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@service_calls_bp.route('/api/service-calls/today', methods=['GET'])
def get_todays_service_calls():
    """Calls scheduled (or, when unscheduled, created) today."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service

        with get_db_session() as session:
            calls = build_call_service(session).get_todays_calls()
            return jsonify({'success': True, 'serviceCalls': calls, 'count': len(calls)})

    except Exception as e:
        logger.error(f"Error getting today's service calls: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@service_calls_bp.route('/api/service-calls/fix-statuses', methods=['POST'])
def fix_service_call_statuses():
    """Move New/Scheduled calls to the status their scheduled time implies."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service

        with get_db_session() as session:
            changed = build_call_service(session).fix_statuses()
            return jsonify({'success': True, 'updated': changed, 'count': len(changed)})

    except Exception as e:
        logger.error(f"Error fixing service call statuses: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@service_calls_bp.route('/api/service-calls/<call_id>', methods=['GET', 'PUT', 'PATCH', 'DELETE'])
def handle_service_call(call_id):
    """Get, update or delete a single service call."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service, get_json_body
        from services.call_service import ServiceCallNotFoundError

        with get_db_session() as session:
            service = build_call_service(session)

            if request.method == 'GET':
                if request.args.get('include') == 'workLogs':
                    call = service.get_service_call_with_logs(call_id)
                else:
                    call = service.get_service_call(call_id)
                if call is None:
                    return jsonify({'success': False, 'error': 'Service call not found'}), 404
                return jsonify({'success': True, 'serviceCall': call})

            if request.method == 'DELETE':
                if service.delete_service_call(call_id):
                    return jsonify({'success': True})
                return jsonify({'success': False, 'error': 'Service call not found'}), 404

            try:
                call = service.update_service_call(call_id, get_json_body())
            except ServiceCallNotFoundError as e:
                return jsonify({'success': False, 'error': str(e)}), 404
            return jsonify({'success': True, 'serviceCall': call})

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error handling service call {call_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
