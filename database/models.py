"""
SQLAlchemy models for the Service Call Manager.
Defines the service call, work log and notification tables.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, JSON, Index
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from database.connection import Base


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')

CALL_STATUSES = ('New', 'Scheduled', 'InProgress', 'OnHold', 'Completed')
ACTIVE_STATUSES = ('New', 'Scheduled', 'InProgress', 'OnHold')
CALL_TYPES = ('Landlord', 'Extra', 'Warranty')
NOTIFICATION_PRIORITIES = ('low', 'normal', 'high', 'urgent')


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# SERVICE CALLS
# =============================================================================

class ServiceCall(Base):
    """A customer repair request and its lifecycle status."""
    __tablename__ = 'service_calls'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(Text, nullable=False)
    problem_desc = Column(Text, nullable=False)
    call_type = Column(String(20), nullable=False)  # Landlord, Extra, Warranty
    landlord_name = Column(String(255))
    model_number = Column(String(100))
    status = Column(String(20), nullable=False, default='New')
    scheduled_at = Column(DateTime)
    parts_analysis = Column(JSONType)
    parts_analyzed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    work_logs = relationship(
        "WorkLog",
        back_populates="service_call",
        cascade="all, delete-orphan",
        order_by="WorkLog.logged_at.desc()"
    )

    __table_args__ = (
        Index('ix_service_calls_status', 'status'),
        Index('ix_service_calls_scheduled_at', 'scheduled_at'),
        Index('ix_service_calls_created_at', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'customerName': self.customer_name,
            'phone': self.phone,
            'address': self.address,
            'problemDesc': self.problem_desc,
            'callType': self.call_type,
            'landlordName': self.landlord_name,
            'modelNumber': self.model_number,
            'status': self.status,
            'scheduledAt': _iso(self.scheduled_at),
            'partsAnalysis': self.parts_analysis,
            'partsAnalyzedAt': _iso(self.parts_analyzed_at),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at)
        }


# =============================================================================
# WORK LOGS
# =============================================================================

class WorkLog(Base):
    """Timestamped note describing work performed on a service call."""
    __tablename__ = 'work_logs'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    call_id = Column(String(36), ForeignKey('service_calls.id', ondelete='CASCADE'), nullable=False)
    notes = Column(Text, nullable=False)
    parts_used = Column(Text)
    logged_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    service_call = relationship("ServiceCall", back_populates="work_logs")

    __table_args__ = (
        Index('ix_work_logs_call_id', 'call_id'),
        Index('ix_work_logs_logged_at', 'logged_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'callId': self.call_id,
            'notes': self.notes,
            'partsUsed': self.parts_used,
            'loggedAt': _iso(self.logged_at)
        }


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class Notification(Base):
    """In-app alerts such as stale call warnings."""
    __tablename__ = 'notifications'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    message = Column(Text)
    notification_type = Column(String(50), default='info')  # info, warning, alert, stale_call
    priority = Column(String(20), default='normal')  # low, normal, high, urgent
    entity_type = Column(String(50))
    entity_id = Column(String(36))
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime)
    extra_data = Column(JSONType, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_notifications_is_read', 'is_read'),
        Index('ix_notifications_created_at', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'message': self.message,
            'notificationType': self.notification_type,
            'priority': self.priority,
            'entityType': self.entity_type,
            'entityId': self.entity_id,
            'isRead': bool(self.is_read),
            'readAt': _iso(self.read_at),
            'metadata': self.extra_data or {},
            'createdAt': _iso(self.created_at)
        }
