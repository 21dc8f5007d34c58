"""
Shared helpers for the API blueprints: access to the integrations the app
factory attaches to the Flask app, and request body parsing.
"""

from flask import current_app, request

from validators import ValidationError


def get_integration(name):
    """automation_client, sms_service, ai_service or parts_analysis_service (None if absent)."""
    return current_app.extensions.get(name)


def get_app_config():
    """Flask config as a plain dict, for services that take a config mapping."""
    return dict(current_app.config)


def get_json_body():
    """
    Raises:
        ValidationError: If the body isn't a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def build_call_service(session):
    from services.call_service import CallService

    parts_service = None
    if current_app.config.get('AUTO_PARTS_ANALYSIS'):
        parts_service = get_integration('parts_analysis_service')

    return CallService(
        session,
        parts_analysis_service=parts_service,
        run_async=current_app.config.get('PARTS_ANALYSIS_ASYNC', True)
    )


def build_workflow_service(session):
    from services.workflow_service import WorkflowService

    return WorkflowService(
        session,
        automation_client=get_integration('automation_client'),
        sms_service=get_integration('sms_service'),
        config=get_app_config()
    )
