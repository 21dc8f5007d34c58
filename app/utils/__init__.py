"""
Utilities Package

Shared helper functions used across the application.
"""

from app.utils.helpers import (
    load_json_file,
    save_json_file,
    timestamped_filename,
)

__all__ = [
    'load_json_file',
    'save_json_file',
    'timestamped_filename',
]
