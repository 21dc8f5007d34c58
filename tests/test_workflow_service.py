"""
Tests for stale call detection and workflow dispatch
"""
import pytest
from datetime import timedelta
from unittest.mock import Mock

from services.automation_client import AutomationServerError, STALE_CALLS_WEBHOOK
from services.notification_service import NotificationService
from services.service_call_repository import ServiceCallRepository
from services.sms_service import SmsNotConfiguredError
from services.workflow_service import (
    WorkflowService,
    UnknownWorkflowError,
    stale_reason,
    STALE_ALERT_TITLE,
)

THRESHOLDS = {'new': 24, 'scheduled_grace': 2, 'in_progress': 24, 'on_hold': 48}


def _call(status, now, created_hours=0, updated_hours=0, scheduled_hours=None):
    call = {
        'status': status,
        'createdAt': (now - timedelta(hours=created_hours)).isoformat(),
        'updatedAt': (now - timedelta(hours=updated_hours)).isoformat(),
        'scheduledAt': None,
    }
    if scheduled_hours is not None:
        call['scheduledAt'] = (now - timedelta(hours=scheduled_hours)).isoformat()
    return call


@pytest.fixture
def stale_calls_db(db_session, sample_call_data, now):
    """Three stale calls plus some healthy ones"""
    repo = ServiceCallRepository(db_session)
    calls = {}
    calls['new_old'] = repo.create(dict(sample_call_data, customerName='Old New'), now=now - timedelta(hours=25))
    calls['new_fresh'] = repo.create(dict(sample_call_data, customerName='Fresh New'), now=now - timedelta(hours=2))
    calls['overdue'] = repo.create(dict(sample_call_data, customerName='Overdue',
                                        scheduledAt='2024-03-04T09:00:00'), now=now - timedelta(days=2))

    stuck = repo.create(dict(sample_call_data, customerName='Stuck'), now=now - timedelta(hours=40))
    calls['stuck'] = repo.update(stuck['id'], {'status': 'InProgress'}, now=now - timedelta(hours=30))

    held = repo.create(dict(sample_call_data, customerName='Held'), now=now - timedelta(hours=40))
    calls['held'] = repo.update(held['id'], {'status': 'OnHold'}, now=now - timedelta(hours=10))

    done = repo.create(dict(sample_call_data, customerName='Done'), now=now - timedelta(days=30))
    calls['done'] = repo.update(done['id'], {'status': 'Completed'}, now=now - timedelta(days=29))
    return calls


@pytest.mark.unit
class TestStaleReason:
    """Tests for the per-status stale rules"""

    def test_new_call(self, now):
        assert stale_reason(_call('New', now, created_hours=25), now, THRESHOLDS) == \
            'New call needs scheduling (25 hours old)'
        assert stale_reason(_call('New', now, created_hours=23), now, THRESHOLDS) is None

    def test_scheduled_call_past_grace(self, now):
        assert stale_reason(_call('Scheduled', now, scheduled_hours=3), now, THRESHOLDS) == \
            'Scheduled call is past due (3 hours overdue)'

    def test_scheduled_call_within_grace(self, now):
        assert stale_reason(_call('Scheduled', now, scheduled_hours=1), now, THRESHOLDS) is None

    def test_scheduled_in_future(self, now):
        assert stale_reason(_call('Scheduled', now, scheduled_hours=-5), now, THRESHOLDS) is None

    def test_in_progress(self, now):
        assert stale_reason(_call('InProgress', now, updated_hours=30), now, THRESHOLDS) == \
            'In-progress call needs update (30 hours since last update)'

    def test_on_hold(self, now):
        assert stale_reason(_call('OnHold', now, updated_hours=50), now, THRESHOLDS) == \
            'On-hold call needs attention (50 hours on hold)'
        assert stale_reason(_call('OnHold', now, updated_hours=47), now, THRESHOLDS) is None

    def test_completed_never_stale(self, now):
        assert stale_reason(_call('Completed', now, created_hours=1000, updated_hours=1000),
                            now, THRESHOLDS) is None


@pytest.mark.unit
class TestCheckStaleCalls:
    """Tests for the stale call check"""

    def test_finds_stale_calls(self, db_session, stale_calls_db, now):
        """Test which calls are flagged and the reasons attached"""
        stale = WorkflowService(db_session).check_stale_calls(now=now)

        flagged = {call['customerName']: call['staleReason'] for call in stale}
        assert flagged == {
            'Old New': 'New call needs scheduling (25 hours old)',
            'Overdue': 'Scheduled call is past due (3 hours overdue)',
            'Stuck': 'In-progress call needs update (30 hours since last update)',
        }

    def test_creates_notifications(self, db_session, stale_calls_db, now):
        """Test that each stale call gets a stale_call notification"""
        WorkflowService(db_session).check_stale_calls(now=now)

        notifications = NotificationService(db_session).get_notifications()
        assert len(notifications) == 3
        stuck = next(n for n in notifications if n['entityId'] == stale_calls_db['stuck']['id'])
        assert stuck['title'] == STALE_ALERT_TITLE
        assert stuck['notificationType'] == 'stale_call'
        assert stuck['entityType'] == 'service_call'
        assert stuck['message'] == (
            'Stuck - In-progress call needs update (30 hours since last update)\n'
            'Address: 123 Main St, Springfield'
        )
        assert stuck['metadata'] == {
            'reason': 'In-progress call needs update (30 hours since last update)',
            'status': 'InProgress',
        }

    def test_repeated_checks_refresh_unread_alert(self, db_session, stale_calls_db, now):
        """Test that hourly runs keep one unread alert per call with the latest reason"""
        service = WorkflowService(db_session)
        for hours in range(3):
            service.check_stale_calls(now=now + timedelta(hours=hours))

        notifications = NotificationService(db_session)
        assert notifications.get_unread_count() == 3
        stuck = [n for n in notifications.get_notifications()
                 if n['entityId'] == stale_calls_db['stuck']['id']]
        assert len(stuck) == 1
        assert stuck[0]['metadata']['reason'] == 'In-progress call needs update (32 hours since last update)'

    def test_read_alert_is_raised_again(self, db_session, stale_calls_db, now):
        """Test that a call still stale after its alert was read gets a new one"""
        service = WorkflowService(db_session)
        service.check_stale_calls(now=now)
        notifications = NotificationService(db_session)
        notifications.mark_all_as_read()

        service.check_stale_calls(now=now + timedelta(hours=1))

        assert notifications.get_unread_count() == 3
        assert len(notifications.get_notifications()) == 6

    def test_forwards_to_automation_server(self, db_session, stale_calls_db, now, fake_automation_client):
        """Test that the stale batch is posted to the webhook"""
        client = fake_automation_client()
        WorkflowService(db_session, automation_client=client).check_stale_calls(now=now)

        assert len(client.webhook_calls) == 1
        path, payload = client.webhook_calls[0]
        assert path == STALE_CALLS_WEBHOOK
        stuck = next(c for c in payload['staleCalls'] if c['customerName'] == 'Stuck')
        assert stuck['status'] == 'InProgress'
        assert stuck['hoursSinceCreated'] == 40
        assert stuck['hoursSinceUpdated'] == 30

    def test_webhook_failure_keeps_notifications(self, db_session, stale_calls_db, now, fake_automation_client):
        """Test that a failing webhook doesn't undo the local alerts"""
        client = fake_automation_client(error=AutomationServerError('down'))
        stale = WorkflowService(db_session, automation_client=client).check_stale_calls(now=now)

        assert len(stale) == 3
        assert NotificationService(db_session).get_unread_count() == 3

    def test_no_stale_calls_no_webhook(self, db_session, now, fake_automation_client):
        """Test that nothing is sent when nothing is stale"""
        client = fake_automation_client()
        sms = Mock()
        stale = WorkflowService(db_session, automation_client=client, sms_service=sms).check_stale_calls(now=now)

        assert stale == []
        assert client.webhook_calls == []
        sms.send_stale_summary.assert_not_called()

    def test_sms_summary(self, db_session, stale_calls_db, now):
        """Test that the stale batch is texted to the office"""
        sms = Mock()
        WorkflowService(db_session, sms_service=sms).check_stale_calls(now=now)

        sent = sms.send_stale_summary.call_args[0][0]
        assert len(sent) == 3

    def test_sms_not_configured_ignored(self, db_session, stale_calls_db, now):
        """Test that a missing Twilio setup doesn't fail the check"""
        sms = Mock()
        sms.send_stale_summary.side_effect = SmsNotConfiguredError('no twilio')

        assert len(WorkflowService(db_session, sms_service=sms).check_stale_calls(now=now)) == 3

    def test_thresholds_from_config(self, db_session, stale_calls_db, now):
        """Test that configured thresholds replace the defaults"""
        service = WorkflowService(db_session, config={'STALE_ON_HOLD_HOURS': 8})
        names = {c['customerName'] for c in service.check_stale_calls(now=now)}
        assert 'Held' in names


@pytest.mark.unit
class TestTriggerWorkflow:
    """Tests for named workflow dispatch"""

    def test_request_model_number_by_call(self, db_session, sample_call_data, now):
        """Test that the customer's phone is looked up from the call"""
        call = ServiceCallRepository(db_session).create(sample_call_data, now=now)
        sms = Mock()
        sms.send_model_number_request.return_value = {
            'success': True, 'message': 'SMS sent to (555) 123-4567', 'sid': 'SM1'
        }

        result = WorkflowService(db_session, sms_service=sms).trigger_workflow(
            'request-model-number', {'callId': call['id']}
        )

        sms.send_model_number_request.assert_called_once_with('(555) 123-4567')
        assert result == {'success': True, 'message': 'SMS sent to (555) 123-4567'}

    def test_request_model_number_explicit_phone(self, db_session):
        """Test that an explicit phone wins over the call lookup"""
        sms = Mock()
        sms.send_model_number_request.return_value = {'success': True, 'message': 'SMS sent to +15550001111'}

        WorkflowService(db_session, sms_service=sms).trigger_workflow(
            'request-model-number', {'customerPhone': '+15550001111'}
        )
        sms.send_model_number_request.assert_called_once_with('+15550001111')

    def test_request_model_number_without_sms(self, db_session):
        """Test that the SMS workflow needs Twilio"""
        with pytest.raises(SmsNotConfiguredError):
            WorkflowService(db_session).trigger_workflow('request-model-number', {'customerPhone': '+15550001111'})

    def test_request_model_number_without_phone(self, db_session):
        """Test that an unknown call and no phone is an error"""
        with pytest.raises(ValueError):
            WorkflowService(db_session, sms_service=Mock()).trigger_workflow(
                'request-model-number', {'callId': 'missing'}
            )

    def test_webhook_result_returned(self, db_session, fake_automation_client):
        """Test that a ready server handles named workflows"""
        client = fake_automation_client(response={'ok': True})
        result = WorkflowService(db_session, automation_client=client).trigger_workflow('daily-digest', {'x': 1})

        assert result == {'ok': True}
        assert client.webhook_calls == [('daily-digest', {'x': 1})]

    def test_stale_check_local_fallback(self, db_session, stale_calls_db, fake_automation_client):
        """Test that the stale call check runs locally when the webhook fails"""
        client = fake_automation_client(error=AutomationServerError('down'))
        result = WorkflowService(db_session, automation_client=client).trigger_workflow('stale-call-check')

        assert isinstance(result, list)

    def test_unknown_workflow(self, db_session):
        """Test that an unknown workflow without a server is an error"""
        with pytest.raises(UnknownWorkflowError) as exc_info:
            WorkflowService(db_session).trigger_workflow('daily-digest')
        assert 'daily-digest' in str(exc_info.value)


@pytest.mark.unit
class TestWorkflowStatus:
    """Tests for execution status reporting"""

    def test_placeholder_without_server(self, db_session):
        assert WorkflowService(db_session).get_workflow_status('wf-1') == {
            'id': 'wf-1', 'status': 'completed', 'result': 'success'
        }

    def test_latest_execution(self, db_session, fake_automation_client):
        client = fake_automation_client(executions=[
            {'finished': False, 'startedAt': '2024-03-04T12:00:00Z', 'stoppedAt': None}
        ])
        status = WorkflowService(db_session, automation_client=client).get_workflow_status('wf-1')

        assert status['status'] == 'running'
        assert status['result'] == 'pending'
        assert status['startedAt'] == '2024-03-04T12:00:00Z'
