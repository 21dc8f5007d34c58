"""
Service Call Manager Application

MODULAR ARCHITECTURE:
The Flask app is built by the factory in app_init.py; this module only creates it.

HTTP layer (in app/ package):
- app/api/service_calls.py, work_logs.py: Service call and work log records
- app/api/daily_sheet.py: Daily technician sheet (JSON / PDF)
- app/api/parts.py: Parts analysis (n8n webhook, Claude, local rules)
- app/api/workflows.py: Workflow dispatch and stale call checks
- app/api/notifications.py, scheduler.py, system.py

Services (in services/ directory):
- services/call_service.py: Service call operations and auto parts analysis
- services/automation_client.py: n8n server lifecycle and REST API
- services/workflow_service.py: Named workflows with local fallbacks
- services/sms_service.py: Twilio SMS
- services/pdf_service.py: ReportLab daily sheet
- services/backup_service.py: JSON backup/restore
- services/scheduler.py: Background jobs

Data Layer:
- database/models.py: SQLAlchemy ORM models
- database/connection.py: Engine and session management
"""
import atexit
import os
import logging

from app_init import create_app, shutdown_app

logger = logging.getLogger(__name__)

app = create_app()
atexit.register(shutdown_app, app)


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    logger.info(f"Starting {app.config['APP_NAME']} on port {port}")
    app.run(host='0.0.0.0', port=port, debug=False)
