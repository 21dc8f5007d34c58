"""
Work Log Repository - Database operations for work logs attached to service calls.
"""

import logging
from typing import List, Dict, Optional, Any
from datetime import datetime
from sqlalchemy.orm import Session

from database.models import WorkLog, ServiceCall
from validators import sanitize_string

logger = logging.getLogger(__name__)


class WorkLogRepository:
    """Repository for work log database operations."""

    def __init__(self, session: Session):
        self.session = session

    def _get_model(self, log_id: str) -> Optional[WorkLog]:
        return self.session.query(WorkLog).filter(WorkLog.id == log_id).first()

    def call_exists(self, call_id: str) -> bool:
        return self.session.query(ServiceCall.id).filter(ServiceCall.id == call_id).first() is not None

    def create(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Dict]:
        """Create a work log. Returns None if the parent call doesn't exist."""
        call_id = data.get('callId')
        if not self.call_exists(call_id):
            return None

        log = WorkLog(
            call_id=call_id,
            notes=sanitize_string(data.get('notes', ''), 10000),
            parts_used=sanitize_string(data['partsUsed'], 10000) if data.get('partsUsed') else None,
            logged_at=now or datetime.utcnow()
        )

        self.session.add(log)
        self.session.flush()
        logger.info(f"Created work log {log.id} for call {call_id}")
        return log.to_dict()

    def get_by_id(self, log_id: str) -> Optional[Dict]:
        log = self._get_model(log_id)
        return log.to_dict() if log else None

    def get_by_call_id(self, call_id: str) -> List[Dict]:
        """Work logs for a call, newest first."""
        logs = self.session.query(WorkLog).filter(
            WorkLog.call_id == call_id
        ).order_by(WorkLog.logged_at.desc()).all()
        return [log.to_dict() for log in logs]

    def get_all(self) -> List[Dict]:
        logs = self.session.query(WorkLog).order_by(WorkLog.logged_at.desc()).all()
        return [log.to_dict() for log in logs]

    def get_by_date_range(self, start: datetime, end: datetime) -> List[Dict]:
        """Work logs logged between start and end (inclusive)."""
        logs = self.session.query(WorkLog).filter(
            WorkLog.logged_at >= start,
            WorkLog.logged_at <= end
        ).order_by(WorkLog.logged_at.desc()).all()
        return [log.to_dict() for log in logs]

    def update(self, log_id: str, data: Dict[str, Any]) -> Optional[Dict]:
        """
        Update notes and/or parts used.
        A payload with nothing to change returns the existing record.
        """
        log = self._get_model(log_id)
        if not log:
            return None

        changed = False
        if 'notes' in data and data['notes'] is not None:
            log.notes = sanitize_string(data['notes'], 10000)
            changed = True
        if 'partsUsed' in data:
            log.parts_used = sanitize_string(data['partsUsed'], 10000) if data['partsUsed'] else None
            changed = True

        if changed:
            self.session.flush()
            logger.info(f"Updated work log {log_id}")

        return log.to_dict()

    def delete(self, log_id: str) -> bool:
        log = self._get_model(log_id)
        if not log:
            return False

        self.session.delete(log)
        self.session.flush()
        return True

    def delete_by_call_id(self, call_id: str) -> int:
        """Delete all work logs for a call. Returns how many were removed."""
        count = self.session.query(WorkLog).filter(
            WorkLog.call_id == call_id
        ).delete(synchronize_session=False)
        self.session.flush()
        return count
