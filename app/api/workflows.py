"""
Workflow Routes Blueprint

- /api/workflows/trigger: Run a named workflow
- /api/workflows/<id>/status: Latest execution status
- /api/workflows/check-stale-calls: Run the stale call check now
- /api/workflows/automation/status: Automation server readiness
- /api/workflows/automation/workflows: Workflows installed on the automation server
"""

import logging
from flask import Blueprint, jsonify

from validators import ValidationError

logger = logging.getLogger(__name__)

# Create blueprint
workflows_bp = Blueprint('workflows_bp', __name__)


@workflows_bp.route('/api/workflows/trigger', methods=['POST'])
def trigger_workflow():
    """Body: {"workflowName": "...", "data": {...}}"""
    try:
        from database.connection import get_db_session
        from app.api.common import build_workflow_service, get_json_body
        from services.workflow_service import UnknownWorkflowError
        from services.sms_service import SmsNotConfiguredError, SmsSendError

        body = get_json_body()
        name = body.get('workflowName')
        if not name:
            raise ValidationError("workflowName is required", 'workflowName')

        with get_db_session() as session:
            try:
                result = build_workflow_service(session).trigger_workflow(name, body.get('data') or {})
            except UnknownWorkflowError as e:
                return jsonify({'success': False, 'error': str(e)}), 404
            except SmsNotConfiguredError as e:
                return jsonify({'success': False, 'error': str(e)}), 503
            except SmsSendError as e:
                return jsonify({'success': False, 'error': str(e)}), 502
            except ValueError as e:
                return jsonify({'success': False, 'error': str(e)}), 400

            return jsonify({'success': True, 'result': result})

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error triggering workflow: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@workflows_bp.route('/api/workflows/<workflow_id>/status', methods=['GET'])
def get_workflow_status(workflow_id):
    try:
        from database.connection import get_db_session
        from app.api.common import build_workflow_service

        with get_db_session() as session:
            status = build_workflow_service(session).get_workflow_status(workflow_id)
            return jsonify({'success': True, 'status': status})

    except Exception as e:
        logger.error(f"Error getting workflow status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@workflows_bp.route('/api/workflows/check-stale-calls', methods=['POST'])
def check_stale_calls():
    try:
        from database.connection import get_db_session
        from app.api.common import build_workflow_service

        with get_db_session() as session:
            stale_calls = build_workflow_service(session).check_stale_calls()
            return jsonify({'success': True, 'staleCalls': stale_calls, 'count': len(stale_calls)})

    except Exception as e:
        logger.error(f"Error checking stale calls: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@workflows_bp.route('/api/workflows/automation/status', methods=['GET'])
def get_automation_status():
    try:
        from app.api.common import get_integration

        client = get_integration('automation_client')
        return jsonify({
            'success': True,
            'isReady': client is not None and client.is_ready(),
            'serverUrl': client.get_server_url() if client else None
        })

    except Exception as e:
        logger.error(f"Error getting automation status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@workflows_bp.route('/api/workflows/automation/workflows', methods=['GET'])
def get_automation_workflows():
    try:
        from app.api.common import get_integration

        client = get_integration('automation_client')
        workflows = client.get_workflows() if client is not None and client.is_ready() else []
        return jsonify({'success': True, 'workflows': workflows})

    except Exception as e:
        logger.error(f"Error listing automation workflows: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
