"""
WSGI Entry Point for Gunicorn

This module provides the WSGI application entry point for production deployment.
Gunicorn can be configured to use either:
  - wsgi:app
  - application:app

Run a single worker: the scheduler and the n8n child process live in the app process.

The Flask application is created in application.py.
"""

from application import app  # noqa: F401
