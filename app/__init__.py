"""
Service Call Manager - Application Package

This package contains the HTTP layer:
- api/: HTTP route handlers (Flask Blueprints), one module per domain
- utils/: Shared utility functions

The app factory and core Flask setup live in app_init.py at the project root.
Business logic lives in the top-level services/ package.
"""

import logging

logger = logging.getLogger(__name__)

# Import blueprints
from app.api.system import system_bp
from app.api.service_calls import service_calls_bp
from app.api.work_logs import work_logs_bp
from app.api.daily_sheet import daily_sheet_bp
from app.api.parts import parts_bp
from app.api.workflows import workflows_bp
from app.api.notifications import notifications_bp
from app.api.scheduler import scheduler_bp

BLUEPRINTS = (
    system_bp,
    service_calls_bp,
    work_logs_bp,
    daily_sheet_bp,
    parts_bp,
    workflows_bp,
    notifications_bp,
    scheduler_bp,
)


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from the app factory after the integrations are attached.

    Args:
        app: Flask application instance
    """
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    logger.info(f"Registered {len(BLUEPRINTS)} API blueprints")


__all__ = [
    'register_blueprints',
    'system_bp',
    'service_calls_bp',
    'work_logs_bp',
    'daily_sheet_bp',
    'parts_bp',
    'workflows_bp',
    'notifications_bp',
    'scheduler_bp',
]
