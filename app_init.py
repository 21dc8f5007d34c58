"""
Application Initialization Module
Initializes the Flask app with its infrastructure and integrations
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from ai_service import AIService
from security import setup_security
from health_checks import register_health_checks
import logging

logger = logging.getLogger(__name__)


def create_app(config_class=None):
    """
    Application factory that creates and configures Flask app with all infrastructure

    Args:
        config_class: Config class to load (defaults to the one FLASK_ENV selects)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())

    setup_logging(app)

    logger.info("=" * 60)
    logger.info(f"Initializing {app.config['APP_NAME']} {app.config['APP_VERSION']}")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # CORS, headers, error handlers
    setup_security(app, app.config)

    create_required_directories(app)

    initialize_database(app)

    # Integrations; each one degrades to "unavailable" rather than failing startup
    app.extensions['ai_service'] = initialize_ai_service(app)
    app.extensions['sms_service'] = initialize_sms_service(app)
    app.extensions['automation_client'] = initialize_automation_client(app)
    app.extensions['parts_analysis_service'] = initialize_parts_analysis(app)

    from app import register_blueprints
    register_blueprints(app)
    register_health_checks(app)

    if app.config.get('SCHEDULER_ENABLED'):
        initialize_scheduler(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def create_required_directories(app):
    """
    Create all required application directories

    Args:
        app: Flask application instance
    """
    directories = [
        app.config['OUTPUT_FOLDER'],
        app.config['BACKUP_FOLDER'],
        'logs'
    ]

    for directory in directories:
        try:
            os.makedirs(directory, exist_ok=True)
            logger.debug(f"Directory ensured: {directory}")
        except OSError as e:
            logger.error(f"Failed to create directory {directory}: {e}")

    logger.info(f"Ensured {len(directories)} required directories")


def initialize_database(app):
    """
    Bind the database module to DATABASE_URL, create tables and optionally seed.
    A missing DATABASE_URL is logged; record endpoints then answer 500.
    """
    from database.connection import configure, init_db

    if not app.config.get('DATABASE_URL'):
        logger.error("DATABASE_URL is not set - service call endpoints will be unavailable")
        return

    try:
        configure(
            app.config['DATABASE_URL'],
            echo=app.config.get('DATABASE_ECHO', False),
            pool_size=app.config.get('DATABASE_POOL_SIZE', 5),
            max_overflow=app.config.get('DATABASE_MAX_OVERFLOW', 10)
        )
        init_db()
    except RuntimeError as e:
        logger.error(f"Database initialization failed: {e}")
        return

    if app.config.get('SEED_SAMPLE_DATA'):
        from database.seed import run_seed
        run_seed()


def initialize_ai_service(app):
    """
    Initialize the Claude client used as the parts analysis fallback

    Args:
        app: Flask application instance

    Returns:
        AIService instance
    """
    ai_service = AIService(app.config)

    if ai_service.is_available('claude'):
        logger.info("AI Services initialized: Claude")
    else:
        logger.warning("No AI services configured - parts analysis falls back to local rules")

    return ai_service


def initialize_sms_service(app):
    from services.sms_service import SmsService, set_sms_service

    service = SmsService(app.config)
    if not service.is_configured():
        logger.warning("Twilio credentials not found - SMS functionality will be disabled")
    set_sms_service(service)
    return service


def initialize_automation_client(app):
    """
    Create the automation server client and, when enabled, connect to (or start) the server.
    Returns the client even if the server isn't ready; callers check is_ready().
    """
    from services.automation_client import AutomationClient, set_automation_client

    client = AutomationClient(app.config)
    set_automation_client(client)

    if app.config.get('N8N_ENABLED'):
        client.initialize(autostart=app.config.get('N8N_AUTOSTART', True))
    else:
        logger.info("Automation server disabled - using local workflows")

    return client


def initialize_parts_analysis(app):
    from services.parts_analysis_service import PartsAnalysisService

    return PartsAnalysisService(
        automation_client=app.extensions.get('automation_client'),
        ai_service=app.extensions.get('ai_service')
    )


def initialize_scheduler(app):
    """Start the background jobs (stale call check, notification cleanup)."""
    from database.connection import is_db_configured
    from services.scheduler import init_scheduler

    if not is_db_configured():
        logger.warning("Scheduler not started - database is not configured")
        return None

    return init_scheduler(
        dict(app.config),
        automation_client=app.extensions.get('automation_client'),
        sms_service=app.extensions.get('sms_service')
    )


def shutdown_app(app):
    """Stop background jobs and the automation server child process."""
    from services.scheduler import shutdown_scheduler

    shutdown_scheduler()

    client = app.extensions.get('automation_client')
    if client is not None:
        client.shutdown()
