"""
System Routes Blueprint

Handles:
- /api/app/version: Application name and version
- /outputs/<filename>: Serve generated PDFs
- /api/database/backup: Write a JSON snapshot of calls and work logs
- /api/database/backups: List snapshots in the backup folder
- /api/database/restore: Restore a snapshot
"""

import os
from flask import Blueprint, request, jsonify, send_from_directory, current_app
import logging

from validators import ValidationError
from security import require_api_key

logger = logging.getLogger(__name__)

# Create blueprint
system_bp = Blueprint('system_bp', __name__)


@system_bp.route('/api/app/version', methods=['GET'])
def get_app_version():
    return jsonify({
        'success': True,
        'name': current_app.config.get('APP_NAME'),
        'version': current_app.config.get('APP_VERSION')
    })


@system_bp.route('/outputs/<path:filename>')
def serve_output_file(filename):
    """Serve files from the outputs folder"""
    return send_from_directory(os.path.abspath(current_app.config['OUTPUT_FOLDER']), filename)


# ============================================================================
# BACKUP & RESTORE
# ============================================================================

@system_bp.route('/api/database/backup', methods=['POST'])
@require_api_key
def backup_database():
    try:
        from database.connection import get_db_session
        from services.backup_service import BackupService

        with get_db_session() as session:
            result = BackupService(session, current_app.config['BACKUP_FOLDER']).create_backup()
        return jsonify({'success': True, **result})

    except Exception as e:
        logger.error(f"Error creating backup: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@system_bp.route('/api/database/backups', methods=['GET'])
def list_backups():
    folder = current_app.config['BACKUP_FOLDER']
    names = sorted(
        (name for name in os.listdir(folder) if name.endswith('.json')),
        reverse=True
    ) if os.path.isdir(folder) else []
    return jsonify({'success': True, 'backups': names})


@system_bp.route('/api/database/restore', methods=['POST'])
@require_api_key
def restore_database():
    """Body: {"filename": "backup-....json"}, a file in the backup folder."""
    try:
        from werkzeug.utils import secure_filename
        from database.connection import get_db_session
        from services.backup_service import BackupService

        data = request.get_json(silent=True) or {}
        folder = current_app.config['BACKUP_FOLDER']

        filename = secure_filename(str(data.get('filename') or ''))
        if not filename:
            raise ValidationError("filename is required", 'filename')
        path = os.path.join(folder, filename)

        with get_db_session() as session:
            counts = BackupService(session, folder).restore_backup(path)
        return jsonify({'success': True, 'restored': counts})

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error restoring backup: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
