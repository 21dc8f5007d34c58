"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from datetime import datetime
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault('FLASK_ENV', 'testing')


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def config_dict():
    """TestingConfig as a plain mapping, the way services receive it"""
    from config import TestingConfig
    return {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'a1b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0'

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def db_session():
    """Session on a fresh in-memory SQLite database"""
    from database.connection import configure, init_db, get_session_factory

    configure('sqlite://')
    init_db()

    session = get_session_factory()()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def app(tmp_path):
    """Full application on an in-memory database with folders under tmp_path"""
    from config import TestingConfig
    from app_init import create_app

    config_class = type('TmpTestingConfig', (TestingConfig,), {
        'OUTPUT_FOLDER': str(tmp_path / 'outputs'),
        'BACKUP_FOLDER': str(tmp_path / 'backups'),
        'WORKFLOWS_FOLDER': str(tmp_path / 'workflows'),
        'API_KEY': None,
    })

    application = create_app(config_class)
    yield application

    from services.scheduler import shutdown_scheduler
    shutdown_scheduler()


@pytest.fixture
def client(app):
    """Flask test client"""
    return app.test_client()


@pytest.fixture
def now():
    """Fixed 'current time' for time dependent logic"""
    return datetime(2024, 3, 4, 12, 0, 0)


@pytest.fixture
def sample_call_data():
    """Fixture providing a valid service call payload"""
    return {
        'customerName': 'John Smith',
        'phone': '(555) 123-4567',
        'address': '123 Main St, Springfield',
        'problemDesc': 'Washer leaking from the front door during the spin cycle',
        'callType': 'Landlord',
        'landlordName': 'Oak Property Management',
        'modelNumber': 'WF45T6000AW',
    }


@pytest.fixture
def sample_parts_markdown():
    """Markdown parts analysis as returned by the parts analysis workflow"""
    return (
        "Samsung WF45T6000AW washer - door seal and lock analysis (genuine OEM parts)\n"
        "\n"
        "1. Door Lock Assembly\n"
        "   • OEM Part Number: DC96-01585B\n"
        "   • Alternate: DC96-01585D\n"
        "   • Failure Mode: Lock fails to engage\n"
        "   • Diagnostic Tip: Check continuity across the lock terminals\n"
        "\n"
        "2. Door Boot Gasket\n"
        "   • OEM Part Number: DC64-03198A\n"
        "   • Failure Mode: Water leak at the front door\n"
        "\n"
        "3. Drain Pump\n"
        "   • OEM Part Number: DC31-00178A\n"
        "   • Failure Mode: Slow drain\n"
        "\n"
        "Suggested Workflow:\n"
        "1. Verify door lock operation\n"
        "2. Inspect boot gasket\n"
        "\n"
        "Note: Always disconnect power before servicing.\n"
    )


class FakeAutomationClient:
    """Stand-in for AutomationClient that records webhook calls"""

    def __init__(self, ready=True, response=None, error=None, executions=None):
        self.ready = ready
        self.response = response
        self.error = error
        self.executions = executions or []
        self.webhook_calls = []

    def is_ready(self):
        return self.ready

    def get_server_url(self):
        return 'http://localhost:5678'

    def get_workflows(self):
        return [{'id': 'wf-1', 'name': 'Stale Calls Alert', 'active': True}]

    def trigger_webhook(self, path, data):
        self.webhook_calls.append((path, data))
        if self.error is not None:
            raise self.error
        return self.response

    def get_workflow_executions(self, workflow_id, limit=10):
        return self.executions[:limit]

    def shutdown(self, timeout=5):
        pass


@pytest.fixture
def fake_automation_client():
    return FakeAutomationClient
