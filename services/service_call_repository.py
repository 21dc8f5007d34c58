"""
Service Call Repository - Database access layer for service calls.
Maps API field names (camelCase) onto table columns and derives call
status from the scheduled time.
"""

import logging
from datetime import datetime, date, timedelta
from typing import List, Optional, Dict, Any, Iterable

from sqlalchemy import func, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.models import ServiceCall
from validators import parse_datetime, sanitize_string

logger = logging.getLogger(__name__)

# Statuses that are only ever changed explicitly
MANUAL_STATUSES = ('InProgress', 'OnHold', 'Completed')

EMPTY_STATS = {
    'total': 0,
    'new': 0,
    'scheduled': 0,
    'inProgress': 0,
    'onHold': 0,
    'completed': 0,
    'todaysTotal': 0
}


def resolve_status(current: str, scheduled_at: Optional[datetime],
                   now: Optional[datetime] = None, advance_due: bool = False) -> str:
    """
    Work out the status a call should have given its scheduled time.

    InProgress, OnHold and Completed are left alone. Otherwise a call with
    no scheduled time is New and a call with one is Scheduled. With
    advance_due, a Scheduled call whose time has passed moves to InProgress.
    """
    if current in MANUAL_STATUSES:
        return current
    if scheduled_at is None:
        return 'New'
    if advance_due and scheduled_at <= (now or datetime.utcnow()):
        return 'InProgress'
    return 'Scheduled'


def day_bounds(day: date):
    """Return [start, end) datetimes for a calendar day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


class ServiceCallRepository:
    """Repository for service call database operations."""

    # Map API field names to database column names
    FIELD_MAPPING = {
        'customerName': 'customer_name',
        'phone': 'phone',
        'address': 'address',
        'problemDesc': 'problem_desc',
        'callType': 'call_type',
        'landlordName': 'landlord_name',
        'modelNumber': 'model_number',
        'status': 'status',
        'scheduledAt': 'scheduled_at',
        'partsAnalysis': 'parts_analysis',
    }

    STRING_FIELDS = ('customerName', 'phone', 'address', 'problemDesc', 'landlordName', 'modelNumber')

    def __init__(self, session: Session):
        self.session = session

    def _map_field(self, key: str) -> Optional[str]:
        """Map API field name to database column name (None for unknown fields)."""
        return self.FIELD_MAPPING.get(key)

    def _to_columns(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Translate an API payload into column values, dropping unknown keys."""
        columns = {}
        for key, value in data.items():
            column = self._map_field(key)
            if column is None:
                continue
            if key == 'scheduledAt':
                value = parse_datetime(value, 'scheduledAt')
            elif key in self.STRING_FIELDS:
                value = sanitize_string(value, 10000) if value is not None else None
                # Optional text fields are stored as NULL rather than ''
                if value == '' and key in ('landlordName', 'modelNumber'):
                    value = None
            columns[column] = value
        return columns

    def _get_model(self, call_id: str) -> Optional[ServiceCall]:
        return self.session.query(ServiceCall).filter(ServiceCall.id == call_id).first()

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Dict:
        """Create a new service call. Status is derived from the scheduled time."""
        now = now or datetime.utcnow()
        columns = self._to_columns(data)
        columns.pop('status', None)
        columns.pop('parts_analysis', None)

        call = ServiceCall(**columns)
        call.status = resolve_status('New', call.scheduled_at, now)
        call.created_at = now
        call.updated_at = now

        self.session.add(call)
        self.session.flush()
        logger.info(f"Created service call {call.id} for {call.customer_name} ({call.status})")
        return call.to_dict()

    def get_all(self) -> List[Dict]:
        """All service calls, newest first."""
        calls = self.session.query(ServiceCall).order_by(ServiceCall.created_at.desc()).all()
        return [c.to_dict() for c in calls]

    def get_by_id(self, call_id: str) -> Optional[Dict]:
        """Get a service call by ID."""
        call = self._get_model(call_id)
        return call.to_dict() if call else None

    def get_by_status(self, status: str) -> List[Dict]:
        """Get service calls with a single status, newest first."""
        return self.get_by_statuses([status])

    def get_by_statuses(self, statuses: Iterable[str]) -> List[Dict]:
        """Get service calls whose status is in the given set, newest first."""
        calls = self.session.query(ServiceCall).filter(
            ServiceCall.status.in_(list(statuses))
        ).order_by(ServiceCall.created_at.desc()).all()
        return [c.to_dict() for c in calls]

    def get_by_date_range(self, start: datetime, end: datetime) -> List[Dict]:
        """Get service calls created between start and end (inclusive)."""
        calls = self.session.query(ServiceCall).filter(
            ServiceCall.created_at >= start,
            ServiceCall.created_at <= end
        ).order_by(ServiceCall.created_at.desc()).all()
        return [c.to_dict() for c in calls]

    def get_calls_for_date(self, day: date) -> List[Dict]:
        """
        Calls belonging on a technician's sheet for the given day.

        A call belongs to a day when it is scheduled on that day, or when it
        has no scheduled time and was created that day. Ordered by scheduled
        time, falling back to creation time.
        """
        start, end = day_bounds(day)
        sort_key = func.coalesce(ServiceCall.scheduled_at, ServiceCall.created_at)

        calls = self.session.query(ServiceCall).filter(
            or_(
                and_(ServiceCall.scheduled_at >= start, ServiceCall.scheduled_at < end),
                and_(ServiceCall.scheduled_at.is_(None),
                     ServiceCall.created_at >= start,
                     ServiceCall.created_at < end)
            )
        ).order_by(sort_key.asc(), ServiceCall.created_at.asc()).all()
        return [c.to_dict() for c in calls]

    def get_todays_calls(self, now: Optional[datetime] = None) -> List[Dict]:
        """Calls for the current day."""
        return self.get_calls_for_date((now or datetime.utcnow()).date())

    def update(self, call_id: str, data: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Dict]:
        """
        Partially update a service call.

        An explicit status is honoured as given. Otherwise a change to the
        scheduled time re-derives the status. updated_at is always refreshed.
        Returns None if the call doesn't exist.
        """
        call = self._get_model(call_id)
        if not call:
            return None

        now = now or datetime.utcnow()
        columns = self._to_columns(data)
        columns.pop('parts_analysis', None)
        explicit_status = columns.pop('status', None)

        for column, value in columns.items():
            setattr(call, column, value)

        if explicit_status:
            call.status = explicit_status
        elif 'scheduled_at' in columns:
            call.status = resolve_status(call.status, call.scheduled_at, now)

        call.updated_at = now
        self.session.flush()
        logger.info(f"Updated service call {call.id} ({', '.join(sorted(columns)) or 'no fields'})")
        return call.to_dict()

    def delete(self, call_id: str) -> bool:
        """Delete a service call and its work logs."""
        call = self._get_model(call_id)
        if not call:
            return False

        self.session.delete(call)
        self.session.flush()
        logger.info(f"Deleted service call {call_id}")
        return True

    # =========================================================================
    # STATS & STATUS MAINTENANCE
    # =========================================================================

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Counts per status plus today's total. All zeros on database error."""
        try:
            rows = self.session.query(
                ServiceCall.status, func.count(ServiceCall.id)
            ).group_by(ServiceCall.status).all()
            counts = {status: count for status, count in rows}

            return {
                'total': sum(counts.values()),
                'new': counts.get('New', 0),
                'scheduled': counts.get('Scheduled', 0),
                'inProgress': counts.get('InProgress', 0),
                'onHold': counts.get('OnHold', 0),
                'completed': counts.get('Completed', 0),
                'todaysTotal': len(self.get_todays_calls(now))
            }
        except SQLAlchemyError as e:
            logger.error(f"Error getting service call stats: {e}")
            return dict(EMPTY_STATS)

    def fix_statuses(self, now: Optional[datetime] = None) -> List[Dict]:
        """
        Re-derive statuses from scheduled times for New and Scheduled calls,
        advancing calls whose scheduled time has passed. Returns changed calls.
        """
        now = now or datetime.utcnow()
        changed = []

        calls = self.session.query(ServiceCall).filter(
            ServiceCall.status.in_(['New', 'Scheduled'])
        ).all()

        for call in calls:
            new_status = resolve_status(call.status, call.scheduled_at, now, advance_due=True)
            if new_status != call.status:
                logger.info(f"Status fix for {call.id}: {call.status} -> {new_status}")
                call.status = new_status
                call.updated_at = now
                changed.append(call.to_dict())

        self.session.flush()
        return changed

    def save_parts_analysis(self, call_id: str, analysis: Dict[str, Any],
                            now: Optional[datetime] = None) -> Optional[Dict]:
        """Store a normalized parts analysis on the call."""
        call = self._get_model(call_id)
        if not call:
            return None

        call.parts_analysis = analysis
        call.parts_analyzed_at = now or datetime.utcnow()
        self.session.flush()
        return call.to_dict()

