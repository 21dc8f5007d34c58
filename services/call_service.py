"""
Call Service - Business operations for service calls and work logs.

Validates payloads, delegates persistence to the repositories and kicks off
a parts analysis in the background when a call's model number or problem
description changes.
"""

import logging
import threading
from datetime import date, datetime
from typing import Dict, List, Any, Optional

from database.connection import get_db_session
from database.models import CALL_STATUSES
from services.service_call_repository import ServiceCallRepository
from services.work_log_repository import WorkLogRepository
from validators import (
    ValidationError,
    SERVICE_CALL_FIELDS,
    WORK_LOG_FIELDS,
    validate_service_call_request,
    validate_work_log_request,
    validate_choice,
)

logger = logging.getLogger(__name__)


class ServiceCallNotFoundError(Exception):
    """Raised when a service call id doesn't exist"""
    def __init__(self, call_id: str):
        self.call_id = call_id
        super().__init__(f"Service call not found: {call_id}")


class WorkLogNotFoundError(Exception):
    """Raised when a work log id doesn't exist"""
    def __init__(self, log_id: str):
        self.log_id = log_id
        super().__init__(f"Work log not found: {log_id}")


def store_parts_analysis(session, analysis_service, call_id: str, model_number: str,
                         problem_description: str) -> Optional[Dict]:
    """Run the analysis chain for a call and save the record on it."""
    result = analysis_service.analyze(model_number, problem_description)
    return ServiceCallRepository(session).save_parts_analysis(call_id, result['analysis'])


def _background_parts_analysis(analysis_service, call_id: str, model_number: str, problem_description: str):
    try:
        with get_db_session() as session:
            store_parts_analysis(session, analysis_service, call_id, model_number, problem_description)
        logger.info(f"Background parts analysis stored for call {call_id}")
    except Exception as e:
        logger.error(f"Background parts analysis failed for call {call_id}: {e}")


class CallService:
    """Service call and work log operations used by the API blueprints."""

    def __init__(self, session, parts_analysis_service=None, run_async: bool = True):
        self.session = session
        self.calls = ServiceCallRepository(session)
        self.work_logs = WorkLogRepository(session)
        self.parts_analysis_service = parts_analysis_service
        self.run_async = run_async

    # =========================================================================
    # PARTS ANALYSIS
    # =========================================================================

    def _maybe_analyze(self, call: Dict[str, Any], previous: Optional[Dict[str, Any]] = None):
        if self.parts_analysis_service is None:
            return
        if not call.get('modelNumber') or not call.get('problemDesc'):
            return
        if previous is not None and (
            previous.get('modelNumber') == call['modelNumber']
            and previous.get('problemDesc') == call['problemDesc']
        ):
            return

        if not self.run_async:
            try:
                store_parts_analysis(self.session, self.parts_analysis_service,
                                     call['id'], call['modelNumber'], call['problemDesc'])
            except Exception as e:
                logger.error(f"Parts analysis failed for call {call['id']}: {e}")
            return

        # The row must be visible to the worker's own session
        self.session.commit()
        logger.info(f"Starting background parts analysis for call {call['id']}")
        threading.Thread(
            target=_background_parts_analysis,
            args=(self.parts_analysis_service, call['id'], call['modelNumber'], call['problemDesc']),
            daemon=True
        ).start()

    # =========================================================================
    # SERVICE CALLS
    # =========================================================================

    def create_service_call(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Dict:
        """
        Raises:
            ValidationError: If the payload is invalid
        """
        is_valid, error = validate_service_call_request(data)
        if not is_valid:
            raise ValidationError(error)

        payload = {key: value for key, value in data.items() if key in SERVICE_CALL_FIELDS}
        call = self.calls.create(payload, now=now)
        self._maybe_analyze(call)
        return call

    def get_all_service_calls(self) -> List[Dict]:
        return self.calls.get_all()

    def get_service_call(self, call_id: str) -> Optional[Dict]:
        return self.calls.get_by_id(call_id)

    def get_service_call_with_logs(self, call_id: str) -> Optional[Dict]:
        call = self.calls.get_by_id(call_id)
        if call is None:
            return None
        call['workLogs'] = self.work_logs.get_by_call_id(call_id)
        return call

    def get_calls_by_status(self, status: str) -> List[Dict]:
        is_valid, error = validate_choice(status, CALL_STATUSES)
        if not is_valid:
            raise ValidationError(f"Invalid status: {error}", 'status')
        return self.calls.get_by_status(status)

    def update_service_call(self, call_id: str, data: Dict[str, Any], now: Optional[datetime] = None) -> Dict:
        """
        Partially update a call.

        Raises:
            ValidationError: If the payload is invalid
            ServiceCallNotFoundError: If the call doesn't exist
        """
        is_valid, error = validate_service_call_request(data, partial=True)
        if not is_valid:
            raise ValidationError(error)

        previous = self.calls.get_by_id(call_id)
        if previous is None:
            raise ServiceCallNotFoundError(call_id)

        payload = {key: value for key, value in data.items() if key in SERVICE_CALL_FIELDS}
        call = self.calls.update(call_id, payload, now=now)
        self._maybe_analyze(call, previous)
        return call

    def delete_service_call(self, call_id: str) -> bool:
        return self.calls.delete(call_id)

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        return self.calls.get_stats(now)

    def get_todays_calls(self, now: Optional[datetime] = None) -> List[Dict]:
        return self.calls.get_todays_calls(now)

    def get_calls_for_date(self, day: date) -> List[Dict]:
        return self.calls.get_calls_for_date(day)

    def fix_statuses(self, now: Optional[datetime] = None) -> List[Dict]:
        changed = self.calls.fix_statuses(now)
        logger.info(f"Status fix updated {len(changed)} call(s)")
        return changed

    # =========================================================================
    # WORK LOGS
    # =========================================================================

    def create_work_log(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Dict:
        """
        Raises:
            ValidationError: If the payload is invalid
            ServiceCallNotFoundError: If the parent call doesn't exist
        """
        is_valid, error = validate_work_log_request(data)
        if not is_valid:
            raise ValidationError(error)

        payload = {key: value for key, value in data.items() if key in WORK_LOG_FIELDS}
        log = self.work_logs.create(payload, now=now)
        if log is None:
            raise ServiceCallNotFoundError(data['callId'])
        return log

    def get_work_logs(self, call_id: str) -> List[Dict]:
        return self.work_logs.get_by_call_id(call_id)

    def update_work_log(self, log_id: str, data: Dict[str, Any]) -> Dict:
        """
        Raises:
            ValidationError: If the payload is invalid
            WorkLogNotFoundError: If the work log doesn't exist
        """
        is_valid, error = validate_work_log_request(data, partial=True)
        if not is_valid:
            raise ValidationError(error)

        log = self.work_logs.update(log_id, data)
        if log is None:
            raise WorkLogNotFoundError(log_id)
        return log

    def delete_work_log(self, log_id: str) -> bool:
        return self.work_logs.delete(log_id)
