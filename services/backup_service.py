"""
Backup Service - JSON export and import of service calls and work logs.
"""

import logging
import os
from datetime import datetime
from typing import Dict, Any, Optional

from app.utils.helpers import load_json_file, save_json_file, timestamped_filename
from database.models import ServiceCall, WorkLog
from validators import ValidationError, parse_datetime, validate_service_call_request

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = 1

CALL_COLUMNS = {
    'customerName': 'customer_name',
    'phone': 'phone',
    'address': 'address',
    'problemDesc': 'problem_desc',
    'callType': 'call_type',
    'landlordName': 'landlord_name',
    'modelNumber': 'model_number',
    'status': 'status',
    'partsAnalysis': 'parts_analysis',
}
CALL_DATETIME_COLUMNS = {
    'scheduledAt': 'scheduled_at',
    'partsAnalyzedAt': 'parts_analyzed_at',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}


class BackupService:
    """Writes and restores database snapshots in the backup folder."""

    def __init__(self, session, backup_folder: str):
        self.session = session
        self.backup_folder = backup_folder

    def create_backup(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Dump every call and work log to a timestamped file. Returns the path and counts."""
        now = now or datetime.utcnow()
        calls = [c.to_dict() for c in self.session.query(ServiceCall).order_by(ServiceCall.created_at).all()]
        logs = [w.to_dict() for w in self.session.query(WorkLog).order_by(WorkLog.logged_at).all()]

        path = os.path.join(self.backup_folder, timestamped_filename('backup', 'json', now))
        save_json_file(path, {
            'version': BACKUP_FORMAT_VERSION,
            'createdAt': now.isoformat(),
            'serviceCalls': calls,
            'workLogs': logs,
        })

        logger.info(f"Backup written to {path} ({len(calls)} calls, {len(logs)} work logs)")
        return {'path': path, 'serviceCalls': len(calls), 'workLogs': len(logs)}

    def restore_backup(self, path: str) -> Dict[str, int]:
        """
        Upsert the calls and work logs from a backup file by id.

        Raises:
            ValidationError: If the file is missing, isn't a backup, or holds
                a service call that fails validation
        """
        if not path or not os.path.exists(path):
            raise ValidationError(f"Backup file not found: {path}", 'path')

        try:
            data = load_json_file(path)
        except ValueError as e:
            raise ValidationError(f"Backup file is not valid JSON: {e}", 'path') from e

        if not isinstance(data, dict) or not isinstance(data.get('serviceCalls'), list):
            raise ValidationError("Backup file has no serviceCalls list", 'path')

        calls = sum(1 for record in data['serviceCalls'] if self._restore_call(record))
        # Calls must exist before their logs
        self.session.flush()
        logs = sum(1 for record in data.get('workLogs') or [] if self._restore_work_log(record))
        self.session.flush()

        logger.info(f"Restored {calls} calls and {logs} work logs from {path}")
        return {'serviceCalls': calls, 'workLogs': logs}

    def _restore_call(self, record: Dict[str, Any]) -> bool:
        if not isinstance(record, dict) or not record.get('id'):
            return False

        existing = self.session.get(ServiceCall, record['id'])
        # New rows need every required column, existing rows only valid values
        fields = {key: record[key] for key in list(CALL_COLUMNS) + ['scheduledAt'] if key in record}
        is_valid, error = validate_service_call_request(fields, partial=existing is not None)
        if not is_valid:
            raise ValidationError(f"Invalid service call {record['id']} in backup: {error}", 'serviceCalls')

        call = existing or ServiceCall(id=record['id'])
        for key, column in CALL_COLUMNS.items():
            if key in record:
                setattr(call, column, record[key])
        for key, column in CALL_DATETIME_COLUMNS.items():
            if key in record:
                setattr(call, column, parse_datetime(record[key], key))

        now = datetime.utcnow()
        call.created_at = call.created_at or now
        call.updated_at = call.updated_at or now
        call.status = call.status or 'New'
        self.session.add(call)
        return True

    def _restore_work_log(self, record: Dict[str, Any]) -> bool:
        if not isinstance(record, dict) or not record.get('id') or not record.get('callId'):
            return False
        if self.session.get(ServiceCall, record['callId']) is None:
            logger.warning(f"Skipping work log {record['id']}: call {record.get('callId')} not in database")
            return False

        log = self.session.get(WorkLog, record['id']) or WorkLog(id=record['id'])
        log.call_id = record['callId']
        log.notes = record.get('notes') or ''
        log.parts_used = record.get('partsUsed')
        log.logged_at = parse_datetime(record.get('loggedAt'), 'loggedAt') or datetime.utcnow()
        self.session.add(log)
        return True
