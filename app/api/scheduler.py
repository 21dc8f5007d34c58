"""
Scheduler Routes Blueprint

Handles background job scheduler:
- /api/scheduler/status: Get scheduler status
- /api/scheduler/run/<job_id>: Manually trigger a job
- /api/scheduler/jobs/<job_id>/enabled: Pause or resume a job
"""

import logging
from flask import Blueprint, jsonify, request

logger = logging.getLogger(__name__)

# Create blueprint
scheduler_bp = Blueprint('scheduler_bp', __name__)


# ============================================================================
# SCHEDULER API
# ============================================================================

@scheduler_bp.route('/api/scheduler/status', methods=['GET'])
def get_scheduler_status():
    """Get the status of background jobs."""
    try:
        from services.scheduler import get_scheduler

        scheduler = get_scheduler()
        return jsonify({
            'success': True,
            'running': scheduler.running,
            'jobs': scheduler.get_job_status()
        })

    except Exception as e:
        logger.error(f"Error getting scheduler status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@scheduler_bp.route('/api/scheduler/run/<job_id>', methods=['POST'])
def run_scheduler_job(job_id):
    """Manually trigger a scheduled job."""
    try:
        from services.scheduler import get_scheduler

        scheduler = get_scheduler()
        if job_id not in scheduler.jobs:
            return jsonify({'success': False, 'error': 'Job not found'}), 404

        if scheduler.run_job_now(job_id):
            status = scheduler.get_job_status()[job_id]
            return jsonify({
                'success': True,
                'message': f'Job {job_id} executed',
                'result': status['lastResult']
            })
        return jsonify({
            'success': False,
            'error': scheduler.get_job_status()[job_id]['lastError']
        }), 500

    except Exception as e:
        logger.error(f"Error running scheduler job: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@scheduler_bp.route('/api/scheduler/jobs/<job_id>/enabled', methods=['PUT'])
def set_scheduler_job_enabled(job_id):
    """Pause ({"enabled": false}) or resume a job."""
    try:
        from services.scheduler import get_scheduler

        data = request.get_json(silent=True) or {}
        enabled = bool(data.get('enabled', True))

        if not get_scheduler().set_job_enabled(job_id, enabled):
            return jsonify({'success': False, 'error': 'Job not found'}), 404
        return jsonify({'success': True, 'jobId': job_id, 'enabled': enabled})

    except Exception as e:
        logger.error(f"Error updating scheduler job: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
