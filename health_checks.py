"""
Health Check & Monitoring Endpoints
Liveness, readiness (database + filesystem) and process metrics
"""
import os
import sys
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from flask import Blueprint, jsonify, current_app
import logging

logger = logging.getLogger(__name__)

# Create Blueprint for health check routes
health_bp = Blueprint('health', __name__)

# Track application start time
START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics (empty if psutil can't read them)
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': round(process.memory_info().rss / 1024 / 1024, 2),
            'memory_percent': round(process.memory_percent(), 2),
            'threads': process.num_threads(),
            'child_processes': len(process.children()),
        }
    except psutil.Error as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_database() -> Dict[str, Any]:
    """Run SELECT 1 against the configured database."""
    from database.connection import check_db_connection, is_db_configured

    if not is_db_configured():
        return {'configured': False, 'healthy': False}

    try:
        check_db_connection()
        return {'configured': True, 'healthy': True}
    except RuntimeError as e:
        return {'configured': True, 'healthy': False, 'error': str(e)}


def check_integrations(app) -> Dict[str, bool]:
    """
    Which optional integrations are usable right now

    Args:
        app: Flask application instance
    """
    automation = app.extensions.get('automation_client')
    sms = app.extensions.get('sms_service')
    ai = app.extensions.get('ai_service')

    return {
        'automation_server': automation is not None and automation.is_ready(),
        'sms': sms is not None and sms.is_configured(),
        'anthropic_claude': ai is not None and ai.is_available('claude'),
    }


def check_filesystem(app) -> Dict[str, Dict[str, bool]]:
    """
    Check that the output, backup and log folders exist and are writable
    """
    required_dirs = {
        'outputs': app.config['OUTPUT_FOLDER'],
        'backups': app.config['BACKUP_FOLDER'],
        'logs': 'logs',
    }

    filesystem_status = {}

    for name, dir_path in required_dirs.items():
        exists = os.path.isdir(dir_path)
        writable = os.access(dir_path, os.W_OK) if exists else False

        filesystem_status[name] = {
            'exists': exists,
            'writable': writable,
            'healthy': exists and writable
        }

    return filesystem_status


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Returns 200 whenever the process is serving requests"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': current_app.config.get('APP_NAME')
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness probe endpoint
    200 when the database answers and the folders are writable, 503 otherwise.
    Integrations are reported but never block readiness.
    """
    try:
        database = check_database()
        filesystem = check_filesystem(current_app)
        filesystem_healthy = all(status['healthy'] for status in filesystem.values())

        is_ready = database['healthy'] and filesystem_healthy

        response = {
            'status': 'ready' if is_ready else 'not_ready',
            'timestamp': datetime.utcnow().isoformat(),
            'checks': {
                'database': database,
                'filesystem': filesystem,
                'filesystem_healthy': filesystem_healthy,
                'integrations': check_integrations(current_app)
            }
        }

        return jsonify(response), 200 if is_ready else 503

    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return jsonify({
            'status': 'error',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """Process metrics and application statistics"""
    try:
        response = {
            'timestamp': datetime.utcnow().isoformat(),
            'service': current_app.config.get('APP_NAME'),
            'version': current_app.config.get('APP_VERSION'),
            'environment': os.environ.get('FLASK_ENV', 'development'),
            'uptime': get_uptime(),
            'system': get_system_metrics(),
            'integrations': check_integrations(current_app),
            'filesystem': check_filesystem(current_app),
            'python_version': sys.version.split()[0]
        }

        return jsonify(response), 200

    except Exception as e:
        logger.error(f"Metrics collection failed: {e}")
        return jsonify({
            'status': 'error',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 500


@health_bp.route('/ping', methods=['GET'])
def ping():
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered")
    logger.info("Available endpoints: /api/health, /api/ready, /api/metrics, /api/ping")
