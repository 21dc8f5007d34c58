"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Records:
- service_calls.py : Service call CRUD, stats, today's calls, status fix
- work_logs.py     : Work log CRUD
- daily_sheet.py   : Daily technician sheet (JSON and PDF)

Automation:
- parts.py         : Parts analysis
- workflows.py     : Workflow dispatch, stale call check, automation server status
- notifications.py : In-app notifications
- scheduler.py     : Background job status and manual runs

Other:
- system.py        : App version, generated files, database backup/restore
- common.py        : Helpers shared by the blueprints
"""

# All blueprints are imported and registered in app/__init__.py
# This file serves as documentation only

__all__ = []
