"""
Workflow Service - Stale call monitoring and workflow dispatch.

This service handles:
- Finding service calls that have stopped progressing
- Creating stale call notifications and forwarding them to the automation server
- Dispatching named workflows (automation server first, local fallback)
- Reporting workflow execution status
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Optional

from database.models import ACTIVE_STATUSES
from services.automation_client import AutomationServerError, STALE_CALLS_WEBHOOK
from services.notification_service import NotificationService
from services.service_call_repository import ServiceCallRepository
from services.sms_service import SmsNotConfiguredError, SmsSendError

logger = logging.getLogger(__name__)

REQUEST_MODEL_NUMBER = 'request-model-number'
STALE_CALL_CHECK = 'stale-call-check'

STALE_ALERT_TITLE = 'Stale Service Call Alert'


class UnknownWorkflowError(Exception):
    """Raised when a workflow has no automation server handler and no local fallback"""
    pass


def _hours_between(later: datetime, earlier: Optional[datetime]) -> float:
    if earlier is None:
        return 0.0
    return (later - earlier).total_seconds() / 3600


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def stale_reason(call: Dict[str, Any], now: datetime, thresholds: Dict[str, float]) -> Optional[str]:
    """
    Why a call counts as stale, or None if it doesn't.

    New calls age from creation, Scheduled calls from their scheduled time
    (after a grace period), InProgress and OnHold calls from their last update.
    """
    status = call.get('status')
    hours_since_created = _hours_between(now, _parse_iso(call.get('createdAt')))
    hours_since_updated = _hours_between(now, _parse_iso(call.get('updatedAt')))

    if status == 'New':
        if hours_since_created >= thresholds['new']:
            return f"New call needs scheduling ({round(hours_since_created)} hours old)"

    elif status == 'Scheduled':
        scheduled_at = _parse_iso(call.get('scheduledAt'))
        if scheduled_at and now > scheduled_at:
            hours_past_due = _hours_between(now, scheduled_at)
            if hours_past_due >= thresholds['scheduled_grace']:
                return f"Scheduled call is past due ({round(hours_past_due)} hours overdue)"

    elif status == 'InProgress':
        if hours_since_updated >= thresholds['in_progress']:
            return f"In-progress call needs update ({round(hours_since_updated)} hours since last update)"

    elif status == 'OnHold':
        if hours_since_updated >= thresholds['on_hold']:
            return f"On-hold call needs attention ({round(hours_since_updated)} hours on hold)"

    return None


class WorkflowService:
    """Stale call checks and named workflow dispatch."""

    def __init__(self, session, automation_client=None, sms_service=None, config=None):
        config = config or {}
        self.session = session
        self.automation_client = automation_client
        self.sms_service = sms_service
        self.thresholds = {
            'new': config.get('STALE_NEW_HOURS', 24),
            'scheduled_grace': config.get('STALE_SCHEDULED_GRACE_HOURS', 2),
            'in_progress': config.get('STALE_IN_PROGRESS_HOURS', 24),
            'on_hold': config.get('STALE_ON_HOLD_HOURS', 48),
        }
        self.calls = ServiceCallRepository(session)
        self.notifications = NotificationService(session)

    def _automation_ready(self) -> bool:
        return self.automation_client is not None and self.automation_client.is_ready()

    # =========================================================================
    # STALE CALLS
    # =========================================================================

    def check_stale_calls(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Find stale calls, raise a notification for each and forward the batch
        to the automation server. Returns the stale calls with their reason.
        """
        now = now or datetime.utcnow()
        stale_calls = []

        for call in self.calls.get_by_statuses(ACTIVE_STATUSES):
            reason = stale_reason(call, now, self.thresholds)
            if reason is None:
                continue

            stale_calls.append(dict(call, staleReason=reason))
            # One unread alert per call, refreshed on every run
            self.notifications.create_or_refresh_notification(
                title=STALE_ALERT_TITLE,
                message=f"{call['customerName']} - {reason}\nAddress: {call['address']}",
                notification_type='stale_call',
                entity_type='service_call',
                entity_id=call['id'],
                metadata={'reason': reason, 'status': call['status']}
            )
            logger.info(f"Stale call notification for: {call['customerName']} ({call['id']})")

        if not stale_calls:
            return stale_calls

        logger.info(f"Found {len(stale_calls)} stale call(s)")
        self._forward_stale_calls(stale_calls, now)
        self._text_stale_summary(stale_calls)
        return stale_calls

    def _forward_stale_calls(self, stale_calls: List[Dict[str, Any]], now: datetime):
        if not self._automation_ready():
            return

        payload = {
            'staleCalls': [
                {
                    'id': call['id'],
                    'customerName': call['customerName'],
                    'address': call['address'],
                    'status': call['status'],
                    'hoursSinceCreated': _hours_between(now, _parse_iso(call.get('createdAt'))),
                    'hoursSinceUpdated': _hours_between(now, _parse_iso(call.get('updatedAt'))),
                }
                for call in stale_calls
            ]
        }
        try:
            self.automation_client.trigger_webhook(STALE_CALLS_WEBHOOK, payload)
            logger.info("Stale calls sent to automation workflow")
        except AutomationServerError as e:
            logger.warning(f"Failed to trigger stale call workflow, continuing with local notifications: {e.message}")

    def _text_stale_summary(self, stale_calls: List[Dict[str, Any]]):
        if self.sms_service is None:
            return
        try:
            self.sms_service.send_stale_summary(stale_calls)
        except SmsNotConfiguredError:
            logger.debug("SMS not configured, skipping stale call summary")
        except SmsSendError as e:
            logger.warning(f"Stale call SMS summary failed: {e}")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def trigger_workflow(self, workflow_name: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a named workflow.

        'request-model-number' texts the customer directly. Everything else
        goes to the automation server's webhook of the same name, falling back
        to a local handler where one exists.

        Raises:
            SmsNotConfiguredError: model number request without Twilio
            UnknownWorkflowError: no webhook answered and no local fallback exists
        """
        data = data or {}
        logger.info(f"Triggering workflow: {workflow_name}")

        if workflow_name == REQUEST_MODEL_NUMBER:
            return self.request_model_number(data.get('callId'), data.get('customerPhone'))

        if self._automation_ready():
            try:
                return self.automation_client.trigger_webhook(workflow_name, data)
            except AutomationServerError as e:
                logger.warning(f"Workflow '{workflow_name}' failed on automation server, using local fallback: {e.message}")

        if workflow_name == STALE_CALL_CHECK:
            return self.check_stale_calls()

        raise UnknownWorkflowError(f"Unknown workflow or no local fallback available: {workflow_name}")

    def request_model_number(self, call_id: Optional[str], customer_phone: Optional[str]) -> Dict[str, Any]:
        """Text the customer asking for their appliance model number."""
        if self.sms_service is None:
            raise SmsNotConfiguredError(
                "Twilio is not configured. Please set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN"
            )

        phone = customer_phone
        if not phone and call_id:
            call = self.calls.get_by_id(call_id)
            phone = call['phone'] if call else None
        if not phone:
            raise ValueError("customerPhone or a valid callId is required")

        logger.info(f"Sending model number request for call {call_id}")
        result = self.sms_service.send_model_number_request(phone)
        return {'success': True, 'message': result['message']}

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_workflow_status(self, workflow_id: str) -> Dict[str, Any]:
        """Latest execution from the automation server, or a placeholder."""
        if self._automation_ready():
            executions = self.automation_client.get_workflow_executions(workflow_id, limit=1)
            if executions:
                latest = executions[0]
                finished = bool(latest.get('finished'))
                return {
                    'id': workflow_id,
                    'status': 'completed' if finished else 'running',
                    'result': 'success' if finished else 'pending',
                    'startedAt': latest.get('startedAt'),
                    'stoppedAt': latest.get('stoppedAt'),
                }

        return {'id': workflow_id, 'status': 'completed', 'result': 'success'}

