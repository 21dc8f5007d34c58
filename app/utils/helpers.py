"""
Helper utility functions for file operations and common tasks.
"""

import os
import json
from datetime import datetime


def load_json_file(filepath, default=None):
    """
    Load JSON data from a file.

    Args:
        filepath: Path to the JSON file
        default: Default value if file doesn't exist (defaults to empty list)

    Returns:
        Parsed JSON data or default value
    """
    if os.path.exists(filepath):
        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)
    return default if default is not None else []


def save_json_file(filepath, data):
    """
    Save data to a JSON file, creating the parent folder if needed.

    Args:
        filepath: Path to the JSON file
        data: Data to save (datetimes are written as strings)
    """
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, default=str)


def timestamped_filename(prefix, extension, moment=None):
    """e.g. backup-2024-03-04T09-05-00.json"""
    moment = moment or datetime.utcnow()
    return f"{prefix}-{moment.strftime('%Y-%m-%dT%H-%M-%S')}.{extension}"
