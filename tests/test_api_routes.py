"""
Integration tests for the JSON API
"""
import json
import os
import pytest
from datetime import datetime
from unittest.mock import patch

FUTURE_DAY = '2099-01-05'


@pytest.fixture
def created_call(client, sample_call_data):
    response = client.post('/api/service-calls', json=dict(sample_call_data, scheduledAt=f'{FUTURE_DAY}T09:30:00'))
    return response.get_json()['serviceCall']


@pytest.mark.integration
class TestServiceCallRoutes:
    """Tests for /api/service-calls"""

    def test_create(self, client, sample_call_data):
        response = client.post('/api/service-calls', json=sample_call_data)
        data = response.get_json()

        assert response.status_code == 201
        assert data['success'] is True
        assert data['serviceCall']['status'] == 'New'
        assert data['serviceCall']['customerName'] == 'John Smith'

    def test_create_scheduled(self, created_call):
        assert created_call['status'] == 'Scheduled'
        assert created_call['scheduledAt'] == f'{FUTURE_DAY}T09:30:00'

    def test_create_invalid(self, client, sample_call_data):
        del sample_call_data['customerName']
        response = client.post('/api/service-calls', json=sample_call_data)

        assert response.status_code == 400
        assert 'customerName' in response.get_json()['error']

    def test_create_non_json(self, client):
        response = client.post('/api/service-calls', data='hello', content_type='text/plain')
        assert response.status_code == 400

    def test_list_and_filter(self, client, sample_call_data, created_call):
        client.post('/api/service-calls', json=sample_call_data)

        everything = client.get('/api/service-calls').get_json()
        assert everything['count'] == 2

        scheduled = client.get('/api/service-calls?status=Scheduled').get_json()
        assert [c['id'] for c in scheduled['serviceCalls']] == [created_call['id']]

    def test_list_invalid_status(self, client):
        assert client.get('/api/service-calls?status=Finished').status_code == 400

    def test_get_one(self, client, created_call):
        response = client.get(f"/api/service-calls/{created_call['id']}")
        assert response.status_code == 200
        assert response.get_json()['serviceCall'] == created_call

    def test_get_missing(self, client):
        assert client.get('/api/service-calls/missing').status_code == 404

    def test_get_with_work_logs(self, client, created_call):
        client.post('/api/work-logs', json={'callId': created_call['id'], 'notes': 'Diagnosed'})

        data = client.get(f"/api/service-calls/{created_call['id']}?include=workLogs").get_json()
        assert [log['notes'] for log in data['serviceCall']['workLogs']] == ['Diagnosed']

    def test_update(self, client, created_call):
        response = client.patch(f"/api/service-calls/{created_call['id']}", json={'status': 'OnHold'})
        assert response.status_code == 200
        assert response.get_json()['serviceCall']['status'] == 'OnHold'

    def test_update_missing(self, client):
        assert client.put('/api/service-calls/missing', json={'status': 'OnHold'}).status_code == 404

    def test_update_invalid(self, client, created_call):
        response = client.put(f"/api/service-calls/{created_call['id']}", json={'status': 'Finished'})
        assert response.status_code == 400

    def test_delete(self, client, created_call):
        assert client.delete(f"/api/service-calls/{created_call['id']}").status_code == 200
        assert client.delete(f"/api/service-calls/{created_call['id']}").status_code == 404

    def test_stats(self, client, sample_call_data, created_call):
        client.post('/api/service-calls', json=sample_call_data)
        stats = client.get('/api/service-calls/stats').get_json()['stats']

        assert stats['total'] == 2
        assert stats['new'] == 1
        assert stats['scheduled'] == 1
        assert stats['todaysTotal'] == 1

    def test_today(self, client, sample_call_data, created_call):
        client.post('/api/service-calls', json=sample_call_data)
        data = client.get('/api/service-calls/today').get_json()

        assert data['count'] == 1
        assert data['serviceCalls'][0]['status'] == 'New'

    def test_fix_statuses(self, client, sample_call_data):
        client.post('/api/service-calls', json=sample_call_data)
        data = client.post('/api/service-calls/fix-statuses').get_json()
        assert data == {'success': True, 'updated': [], 'count': 0}


@pytest.mark.integration
class TestWorkLogRoutes:
    """Tests for work log endpoints"""

    def test_create_and_list(self, client, created_call):
        response = client.post('/api/work-logs', json={
            'callId': created_call['id'], 'notes': 'Replaced pump', 'partsUsed': 'DC31-00178A'
        })
        assert response.status_code == 201

        data = client.get(f"/api/service-calls/{created_call['id']}/work-logs").get_json()
        assert data['count'] == 1
        assert data['workLogs'][0]['partsUsed'] == 'DC31-00178A'

    def test_create_for_missing_call(self, client):
        response = client.post('/api/work-logs', json={'callId': 'missing', 'notes': 'x'})
        assert response.status_code == 404

    def test_create_without_notes(self, client, created_call):
        response = client.post('/api/work-logs', json={'callId': created_call['id']})
        assert response.status_code == 400

    def test_update_and_delete(self, client, created_call):
        log = client.post('/api/work-logs', json={'callId': created_call['id'], 'notes': 'x'}).get_json()['workLog']

        updated = client.put(f"/api/work-logs/{log['id']}", json={'notes': 'Diagnosed'}).get_json()
        assert updated['workLog']['notes'] == 'Diagnosed'

        assert client.delete(f"/api/work-logs/{log['id']}").status_code == 200
        assert client.delete(f"/api/work-logs/{log['id']}").status_code == 404
        assert client.patch(f"/api/work-logs/{log['id']}", json={'notes': 'y'}).status_code == 404


@pytest.mark.integration
class TestDailySheetRoutes:
    """Tests for the daily sheet"""

    def test_calls_for_date(self, client, created_call):
        data = client.get(f'/api/daily-sheet?date={FUTURE_DAY}').get_json()

        assert data['date'] == FUTURE_DAY
        assert [c['id'] for c in data['serviceCalls']] == [created_call['id']]

    def test_invalid_date(self, client):
        assert client.get('/api/daily-sheet?date=not-a-date').status_code == 400

    def test_pdf_download(self, client, created_call):
        response = client.get(f'/api/daily-sheet?date={FUTURE_DAY}&format=pdf')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert 'daily-service-sheet-2099-01-05.pdf' in response.headers['Content-Disposition']

    def test_export_and_serve(self, client, app, created_call):
        data = client.post('/api/daily-sheet/export', json={'date': FUTURE_DAY}).get_json()

        assert data['count'] == 1
        assert data['path'] == os.path.join(app.config['OUTPUT_FOLDER'], 'daily-service-sheet-2099-01-05.pdf')
        assert os.path.exists(data['path'])

        served = client.get('/outputs/daily-service-sheet-2099-01-05.pdf')
        assert served.status_code == 200
        assert served.data.startswith(b'%PDF')

    def test_export_given_calls(self, client, sample_call_data):
        data = client.post('/api/daily-sheet/export', json={
            'date': FUTURE_DAY, 'calls': [sample_call_data], 'filename': 'custom.pdf'
        }).get_json()

        assert data['count'] == 1
        assert data['path'].endswith('custom.pdf')

    def test_default_day_is_utc(self, client, created_call):
        """Test that the sheet without a date uses the UTC day, like today's calls"""
        with patch('app.api.daily_sheet.datetime') as clock:
            clock.utcnow.return_value = datetime(2099, 1, 5, 23, 30)
            clock.now.return_value = datetime(2099, 1, 6, 11, 30)
            data = client.get('/api/daily-sheet').get_json()

        assert data['date'] == FUTURE_DAY
        assert [c['id'] for c in data['serviceCalls']] == [created_call['id']]

    def test_export_calls_not_a_list(self, client):
        response = client.post('/api/daily-sheet/export', json={'calls': 'nope'})
        assert response.status_code == 400

    def test_export_calls_must_be_objects(self, client, sample_call_data):
        response = client.post('/api/daily-sheet/export', json={
            'date': FUTURE_DAY, 'calls': [sample_call_data, 'John Smith', 42]
        })

        assert response.status_code == 400
        assert response.get_json()['error'] == 'calls must be a list of service call objects'


@pytest.mark.integration
class TestPartsRoutes:
    """Tests for parts analysis endpoints with no remote sources configured"""

    def test_analyze(self, client):
        response = client.post('/api/parts/analyze', json={
            'modelNumber': 'WF45T6000AW', 'problemDescription': 'Washer is leaking'
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['success'] is True
        assert data['analysis']['modelNumber'] == 'WF45T6000AW'
        assert data['autoTag']['suggestedParts'] == ['Door seal', 'Water pump', 'Hoses']

    def test_analyze_missing_field(self, client):
        response = client.post('/api/parts/analyze', json={'modelNumber': 'WF45T6000AW'})
        assert response.status_code == 400

    def test_analyze_stored_call(self, client, created_call):
        response = client.post(f"/api/service-calls/{created_call['id']}/parts-analysis")
        data = response.get_json()

        assert response.status_code == 200
        assert data['serviceCall']['partsAnalysis']['modelNumber'] == 'WF45T6000AW'
        assert data['serviceCall']['partsAnalyzedAt'] is not None

    def test_analyze_call_without_model(self, client, sample_call_data):
        del sample_call_data['modelNumber']
        call = client.post('/api/service-calls', json=sample_call_data).get_json()['serviceCall']

        assert client.post(f"/api/service-calls/{call['id']}/parts-analysis").status_code == 400
        assert client.post('/api/service-calls/missing/parts-analysis').status_code == 404


@pytest.mark.integration
class TestWorkflowRoutes:
    """Tests for workflow endpoints without an automation server or Twilio"""

    def test_trigger_requires_name(self, client):
        assert client.post('/api/workflows/trigger', json={}).status_code == 400

    def test_unknown_workflow(self, client):
        response = client.post('/api/workflows/trigger', json={'workflowName': 'daily-digest'})
        assert response.status_code == 404

    def test_model_number_request_without_twilio(self, client):
        response = client.post('/api/workflows/trigger', json={
            'workflowName': 'request-model-number', 'data': {'customerPhone': '+15551234567'}
        })
        assert response.status_code == 503

    def test_model_number_request_without_phone(self, client):
        response = client.post('/api/workflows/trigger', json={'workflowName': 'request-model-number'})
        assert response.status_code == 400

    def test_stale_call_check(self, client, sample_call_data):
        client.post('/api/service-calls', json=sample_call_data)
        data = client.post('/api/workflows/check-stale-calls').get_json()
        assert data == {'success': True, 'staleCalls': [], 'count': 0}

    def test_trigger_stale_check_locally(self, client):
        data = client.post('/api/workflows/trigger', json={'workflowName': 'stale-call-check'}).get_json()
        assert data == {'success': True, 'result': []}

    def test_status_placeholder(self, client):
        data = client.get('/api/workflows/wf-1/status').get_json()
        assert data['status'] == {'id': 'wf-1', 'status': 'completed', 'result': 'success'}

    def test_automation_status(self, client):
        data = client.get('/api/workflows/automation/status').get_json()
        assert data['isReady'] is False
        assert data['serverUrl'].startswith('http://')
        assert client.get('/api/workflows/automation/workflows').get_json()['workflows'] == []


@pytest.mark.integration
class TestNotificationRoutes:
    """Tests for notification endpoints"""

    def test_create_and_list(self, client):
        response = client.post('/api/notifications', json={'title': 'Hello', 'priority': 'high'})
        assert response.status_code == 201

        data = client.get('/api/notifications').get_json()
        assert data['unreadCount'] == 1
        assert data['notifications'][0]['priority'] == 'high'

    def test_create_validation(self, client):
        assert client.post('/api/notifications', json={}).status_code == 400
        assert client.post('/api/notifications', json={'title': 'x', 'priority': 'extreme'}).status_code == 400

    def test_read_and_delete(self, client):
        note = client.post('/api/notifications', json={'title': 'Hello'}).get_json()['notification']
        client.post('/api/notifications', json={'title': 'Again'})

        assert client.post(f"/api/notifications/{note['id']}/read").status_code == 200
        assert client.get('/api/notifications?unread_only=true').get_json()['unreadCount'] == 1
        assert client.post('/api/notifications/read-all').get_json()['count'] == 1
        assert client.delete(f"/api/notifications/{note['id']}").status_code == 200
        assert client.delete(f"/api/notifications/{note['id']}").status_code == 404
        assert client.post('/api/notifications/missing/read').status_code == 404


@pytest.mark.integration
class TestSchedulerRoutes:
    """Tests for scheduler endpoints"""

    def test_status_without_jobs(self, client):
        data = client.get('/api/scheduler/status').get_json()
        assert data['running'] is False
        assert data['jobs'] == {}

    def test_run_and_pause_job(self, client, app):
        from services.scheduler import init_scheduler

        init_scheduler(dict(app.config), start=False)

        data = client.post('/api/scheduler/run/stale_call_check').get_json()
        assert data['success'] is True
        assert data['result'] == 0

        response = client.put('/api/scheduler/jobs/cleanup_notifications/enabled', json={'enabled': False})
        assert response.get_json() == {'success': True, 'jobId': 'cleanup_notifications', 'enabled': False}
        assert client.get('/api/scheduler/status').get_json()['jobs']['cleanup_notifications']['enabled'] is False

    def test_missing_job(self, client):
        assert client.post('/api/scheduler/run/missing').status_code == 404
        assert client.put('/api/scheduler/jobs/missing/enabled', json={'enabled': True}).status_code == 404


@pytest.mark.integration
class TestSystemRoutes:
    """Tests for version and backup endpoints"""

    def test_version(self, client, app):
        data = client.get('/api/app/version').get_json()
        assert data['name'] == app.config['APP_NAME']
        assert data['version'] == app.config['APP_VERSION']

    def test_backup_list_restore(self, client, created_call):
        backup = client.post('/api/database/backup').get_json()
        assert backup['serviceCalls'] == 1

        names = client.get('/api/database/backups').get_json()['backups']
        assert names == [os.path.basename(backup['path'])]

        client.delete(f"/api/service-calls/{created_call['id']}")
        restored = client.post('/api/database/restore', json={'filename': names[0]}).get_json()

        assert restored['restored'] == {'serviceCalls': 1, 'workLogs': 0}
        assert client.get(f"/api/service-calls/{created_call['id']}").status_code == 200

    def test_restore_requires_file(self, client):
        assert client.post('/api/database/restore', json={}).status_code == 400
        assert client.post('/api/database/restore', json={'filename': 'nope.json'}).status_code == 400

    def test_restore_ignores_paths_outside_backup_folder(self, client, app, tmp_path, created_call):
        """Test that only files inside the backup folder can be restored"""
        outside = tmp_path / 'elsewhere.json'
        outside.write_text(json.dumps({'serviceCalls': [dict(created_call, customerName='Hijacked')]}))

        by_path = client.post('/api/database/restore', json={'path': str(outside)})
        traversal = client.post('/api/database/restore', json={'filename': '../elsewhere.json'})

        assert by_path.status_code == 400
        assert by_path.get_json()['error'] == 'filename is required'
        assert traversal.status_code == 400
        assert 'not found' in traversal.get_json()['error']
        call = client.get(f"/api/service-calls/{created_call['id']}").get_json()['serviceCall']
        assert call['customerName'] == 'John Smith'

    def test_restore_malformed_record(self, client, app):
        """Test that a backup record missing required columns is a 400, not a database error"""
        os.makedirs(app.config['BACKUP_FOLDER'], exist_ok=True)
        with open(os.path.join(app.config['BACKUP_FOLDER'], 'broken.json'), 'w') as f:
            json.dump({'serviceCalls': [{'id': 'abc', 'phone': '5551234567'}]}, f)

        response = client.post('/api/database/restore', json={'filename': 'broken.json'})

        assert response.status_code == 400
        assert 'Invalid service call abc' in response.get_json()['error']
        assert client.get('/api/service-calls/abc').status_code == 404

    def test_api_key_enforced(self, client, app):
        app.config['API_KEY'] = 'secret'

        assert client.post('/api/database/backup').status_code == 401
        assert client.post('/api/database/backup', headers={'X-API-Key': 'wrong'}).status_code == 403
        assert client.post('/api/database/backup', headers={'X-API-Key': 'secret'}).status_code == 200
