"""
Security Utilities & Middleware
CORS, response headers, JSON error handlers and request logging for the API
"""
import os
import secrets
from functools import wraps
from typing import Callable, Dict, Any
from flask import Flask, request, jsonify, Response, current_app
from flask_cors import CORS
import logging

from validators import ValidationError

logger = logging.getLogger(__name__)

# Paths that are polled often enough to drown the request log
QUIET_PATHS = ('/api/health', '/api/ping', '/api/workflows/automation/status')


class SecurityConfig:
    """Secret key generation and validation"""

    @staticmethod
    def generate_secret_key() -> str:
        return secrets.token_hex(32)

    @staticmethod
    def validate_secret_key(secret_key: str) -> bool:
        """
        Validate that secret key is sufficiently secure

        Args:
            secret_key: Secret key to validate

        Returns:
            True if key is secure, False otherwise
        """
        if not secret_key:
            return False

        # 32 characters minimum for 128-bit security
        if len(secret_key) < 32:
            logger.warning("Secret key is too short (minimum 32 characters)")
            return False

        weak_keys = ['dev', 'test', 'secret', 'password', '12345', 'changeme']
        if any(weak in secret_key.lower() for weak in weak_keys):
            logger.warning("Secret key appears to be weak or default")
            return False

        return True

    @staticmethod
    def ensure_secret_key(config: Dict[str, Any]) -> str:
        """Return the configured secret key, or a freshly generated one if it is missing or weak."""
        secret_key = config.get('SECRET_KEY')

        if not secret_key or not SecurityConfig.validate_secret_key(secret_key):
            if os.environ.get('FLASK_ENV') == 'production':
                logger.error("No secure SECRET_KEY in production! Generating one...")
                logger.error("Add SECRET_KEY to environment variables for persistence!")

            secret_key = SecurityConfig.generate_secret_key()
            logger.warning(f"Generated new secret key (length: {len(secret_key)})")

        return secret_key


def setup_security_headers(app: Flask):
    """
    Add security headers to all responses

    Args:
        app: Flask application instance
    """
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        # HTTPS only outside debug
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        # JSON and PDF only, nothing to load
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"

        return response

    logger.info("Security headers configured")


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Configure CORS for the UI origins

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    cors_origins = config.get('CORS_ORIGINS', ['*'])
    cors_methods = config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'])
    cors_headers = config.get('CORS_ALLOW_HEADERS', ['Content-Type', 'Authorization'])

    if not app.debug and '*' in cors_origins:
        logger.warning("Using wildcard CORS in production! Set CORS_ORIGINS environment variable.")

    CORS(
        app,
        resources={r"/api/*": {"origins": cors_origins}},
        methods=cors_methods,
        allow_headers=cors_headers + ['X-API-Key'],
        max_age=3600
    )

    logger.info(f"CORS configured: origins={cors_origins}")


def require_api_key(f: Callable) -> Callable:
    """
    Require the X-API-Key header on an endpoint when API_KEY is configured.
    Without API_KEY the endpoint is open (local single-user setups).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected_key = current_app.config.get('API_KEY')
        if not expected_key:
            return f(*args, **kwargs)

        api_key = request.headers.get('X-API-Key')
        if not api_key:
            logger.warning(f"Missing API key for {request.path}")
            return jsonify({'success': False, 'error': 'API key required'}), 401

        if not secrets.compare_digest(api_key, expected_key):
            logger.warning(f"Invalid API key for {request.path}")
            return jsonify({'success': False, 'error': 'Invalid API key'}), 403

        return f(*args, **kwargs)

    return decorated_function


def sanitize_error_response(error: Exception, include_details: bool = False) -> Dict[str, Any]:
    """
    Error body that hides internals unless include_details (debug only)
    """
    error_response = {
        'success': False,
        'error': 'Internal Server Error',
        'message': 'An error occurred while processing your request'
    }

    if include_details:
        error_response['details'] = str(error)
        error_response['type'] = type(error).__name__

    return error_response


def _error(status: int, error: str, message: str):
    return jsonify({'success': False, 'error': error, 'message': message}), status


def setup_error_handlers(app: Flask):
    """
    Register JSON error handlers that don't expose stack traces

    Args:
        app: Flask application instance
    """
    include_details = app.debug

    @app.errorhandler(ValidationError)
    def validation_error(error):
        return jsonify({'success': False, 'error': error.message, 'field': error.field}), 400

    @app.errorhandler(400)
    def bad_request(error):
        return _error(400, 'Bad Request',
                      'The request could not be understood or was missing required parameters')

    @app.errorhandler(404)
    def not_found(error):
        return _error(404, 'Not Found', 'The requested resource was not found')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error(405, 'Method Not Allowed', 'The method is not allowed for the requested URL')

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return _error(413, 'Payload Too Large', 'The request body is too large')

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify(sanitize_error_response(error, include_details)), 500

    @app.errorhandler(503)
    def service_unavailable(error):
        return _error(503, 'Service Unavailable',
                      'The service is temporarily unavailable. Please try again later')

    logger.info("Error handlers registered")


def setup_request_logging(app: Flask):
    """
    Log each request and response, except for polling endpoints

    Args:
        app: Flask application instance
    """
    @app.before_request
    def log_request():
        if request.path in QUIET_PATHS:
            return

        logger.info(f"Request: {request.method} {request.path} from {request.remote_addr}")

    @app.after_request
    def log_response(response: Response) -> Response:
        if request.path in QUIET_PATHS:
            return response

        logger.info(
            f"Response: {request.method} {request.path} "
            f"status={response.status_code} "
            f"size={response.content_length}"
        )

        return response

    logger.info("Request logging configured")


def validate_environment_variables(required_vars: list, app: Flask) -> bool:
    """
    Warn about missing environment variables

    Returns:
        True if all are set
    """
    missing_vars = [var for var in required_vars if not os.environ.get(var)]

    for var in missing_vars:
        logger.warning(f"Missing environment variable: {var}")

    if missing_vars and not app.debug:
        logger.error(f"Missing required environment variables in production: {missing_vars}")
        logger.error("Application may not function correctly!")

    return len(missing_vars) == 0


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Setup all security features for the application

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    logger.info("Configuring application security...")

    app.secret_key = SecurityConfig.ensure_secret_key(config)

    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug:
        validate_environment_variables(['SECRET_KEY', 'DATABASE_URL'], app)

    logger.info("Security configuration complete")
