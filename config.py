"""
Centralized Configuration for the Service Call Manager
Manages environment-specific settings, secrets, and integration endpoints.
"""
import os


class Config:
    """Base configuration with defaults"""

    APP_NAME = 'service-call-manager'
    APP_VERSION = os.environ.get('APP_VERSION', '1.0.0')

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    # Required as X-API-Key on backup/restore when set
    API_KEY = os.environ.get('API_KEY')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max request body

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Database Settings
    DATABASE_URL = os.environ.get('DATABASE_URL')
    DATABASE_POOL_SIZE = int(os.environ.get('DATABASE_POOL_SIZE', '5'))
    DATABASE_MAX_OVERFLOW = int(os.environ.get('DATABASE_MAX_OVERFLOW', '10'))
    DATABASE_ECHO = os.environ.get('DATABASE_ECHO', 'false').lower() == 'true'
    SEED_SAMPLE_DATA = os.environ.get('SEED_SAMPLE_DATA', 'false').lower() == 'true'

    # File Storage Paths
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    OUTPUT_FOLDER = os.environ.get('OUTPUT_FOLDER', 'outputs')
    BACKUP_FOLDER = os.environ.get('BACKUP_FOLDER', 'backups')
    WORKFLOWS_FOLDER = os.environ.get(
        'WORKFLOWS_FOLDER', os.path.join(BASE_DIR, 'resources', 'workflows')
    )

    # Workflow automation server (n8n)
    N8N_ENABLED = os.environ.get('N8N_ENABLED', 'true').lower() == 'true'
    N8N_AUTOSTART = os.environ.get('N8N_AUTOSTART', 'true').lower() == 'true'
    N8N_HOST = os.environ.get('N8N_HOST', 'localhost')
    N8N_PORT = int(os.environ.get('N8N_PORT', '5678'))
    N8N_BASIC_AUTH_USER = os.environ.get('N8N_BASIC_AUTH_USER', 'admin')
    N8N_BASIC_AUTH_PASSWORD = os.environ.get('N8N_BASIC_AUTH_PASSWORD', 'admin123')
    N8N_ENCRYPTION_KEY = os.environ.get('N8N_ENCRYPTION_KEY', 'service-call-manager-n8n-key')
    N8N_API_KEY = os.environ.get('N8N_API_KEY')
    N8N_USER_FOLDER = os.environ.get(
        'N8N_USER_FOLDER', os.path.join(os.path.expanduser('~'), '.service-call-manager', 'n8n')
    )
    N8N_START_COMMAND = os.environ.get('N8N_START_COMMAND', 'npx n8n start').split()
    N8N_STARTUP_TIMEOUT = int(os.environ.get('N8N_STARTUP_TIMEOUT', '45'))  # seconds
    N8N_API_TIMEOUT = int(os.environ.get('N8N_API_TIMEOUT', '30'))  # seconds

    # SMS (Twilio)
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')
    STALE_ALERT_PHONE = os.environ.get('STALE_ALERT_PHONE')

    # AI Service API Keys
    ANTHROPIC_API_KEY = os.environ.get('ANTHROPIC_API_KEY')

    # AI Model Configuration
    AI_MODELS = {
        'claude': {
            'model': os.environ.get('CLAUDE_MODEL', 'claude-sonnet-4-20250514'),
            'max_tokens': 4000,
            'temperature': 0.3,
        },
    }

    # AI Retry Configuration
    AI_RETRY_ATTEMPTS = int(os.environ.get('AI_RETRY_ATTEMPTS', '3'))
    AI_RETRY_DELAY = int(os.environ.get('AI_RETRY_DELAY', '2'))  # seconds
    AI_TIMEOUT = int(os.environ.get('AI_TIMEOUT', '120'))  # seconds

    # Background parts analysis on create/update
    AUTO_PARTS_ANALYSIS = os.environ.get('AUTO_PARTS_ANALYSIS', 'true').lower() == 'true'
    PARTS_ANALYSIS_ASYNC = os.environ.get('PARTS_ANALYSIS_ASYNC', 'true').lower() == 'true'

    # Stale call thresholds (hours)
    STALE_NEW_HOURS = int(os.environ.get('STALE_NEW_HOURS', '24'))
    STALE_SCHEDULED_GRACE_HOURS = int(os.environ.get('STALE_SCHEDULED_GRACE_HOURS', '2'))
    STALE_IN_PROGRESS_HOURS = int(os.environ.get('STALE_IN_PROGRESS_HOURS', '24'))
    STALE_ON_HOLD_HOURS = int(os.environ.get('STALE_ON_HOLD_HOURS', '48'))

    # Scheduler
    SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'true').lower() == 'true'
    STALE_CHECK_INTERVAL = int(os.environ.get('STALE_CHECK_INTERVAL', str(60 * 60)))  # seconds
    NOTIFICATION_RETENTION_DAYS = int(os.environ.get('NOTIFICATION_RETENTION_DAYS', '30'))

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    # Allow all CORS in development
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:5173').split(',')
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'
    # No child processes, timers or outbound calls in tests
    N8N_ENABLED = False
    N8N_AUTOSTART = False
    SCHEDULER_ENABLED = False
    AUTO_PARTS_ANALYSIS = False
    PARTS_ANALYSIS_ASYNC = False
    TWILIO_ACCOUNT_SID = None
    TWILIO_AUTH_TOKEN = None
    TWILIO_PHONE_NUMBER = None
    ANTHROPIC_API_KEY = None


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config():
    """Get configuration based on FLASK_ENV environment variable"""
    env = os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
