"""
Input Validation & Sanitization Utilities
Validates service call and work log payloads before they reach the database
"""
import re
from datetime import datetime, date, timezone
from typing import Dict, Any, List, Optional, Tuple

from dateutil import parser as date_parser

from database.models import CALL_STATUSES, CALL_TYPES
import logging

logger = logging.getLogger(__name__)

# Regex patterns
PHONE_PATTERN = re.compile(r'^\+?1?\d{9,15}$')
MODEL_NUMBER_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9\-/. ]*$')

# Field limits
MAX_NAME_LENGTH = 255
MAX_ADDRESS_LENGTH = 500
MAX_PROBLEM_LENGTH = 5000
MAX_MODEL_NUMBER_LENGTH = 100
MAX_NOTES_LENGTH = 10000

SERVICE_CALL_REQUIRED_FIELDS = ['customerName', 'phone', 'address', 'problemDesc', 'callType']
SERVICE_CALL_FIELDS = set(SERVICE_CALL_REQUIRED_FIELDS) | {
    'landlordName', 'modelNumber', 'status', 'scheduledAt'
}
WORK_LOG_FIELDS = {'callId', 'notes', 'partsUsed'}


class ValidationError(Exception):
    """Custom exception for validation errors"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [
        field for field in required_fields
        if field not in data or data[field] is None or (isinstance(data[field], str) and not data[field].strip())
    ]

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    # Remove common separators
    cleaned_phone = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not PHONE_PATTERN.match(cleaned_phone):
        return False, "Invalid phone number format"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_choice(value: Any, choices) -> Tuple[bool, Optional[str]]:
    """Validate that value is one of the allowed choices"""
    if value not in choices:
        return False, f"Must be one of: {', '.join(choices)}"
    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes, trimming and truncating

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    sanitized = value.replace('\x00', '').strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def parse_datetime(value: Any, field: str = 'date') -> Optional[datetime]:
    """
    Parse an incoming timestamp into a naive UTC datetime.

    Accepts datetime objects and ISO-8601 (or any dateutil-parsable) strings.
    Empty values parse to None.

    Raises:
        ValidationError: If the value can't be parsed
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value)
        except ValueError:
            try:
                parsed = date_parser.parse(value)
            except (ValueError, OverflowError) as e:
                raise ValidationError(f"Invalid {field}: {value}", field) from e
    else:
        raise ValidationError(f"Invalid {field}: expected a date string", field)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    return parsed


def parse_date(value: Any, field: str = 'date') -> Optional[date]:
    """Parse a calendar date (YYYY-MM-DD or a full timestamp)."""
    if value is None or value == '':
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    parsed = parse_datetime(value, field)
    return parsed.date() if parsed else None


def validate_service_call_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate a service call create (or partial update) payload

    Args:
        data: Request data dictionary
        partial: True for updates, where only the supplied fields are checked

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    if not partial:
        is_valid, error = validate_required_fields(data, SERVICE_CALL_REQUIRED_FIELDS)
        if not is_valid:
            return False, error
    else:
        for field in SERVICE_CALL_REQUIRED_FIELDS:
            if field in data:
                is_valid, error = validate_required_fields(data, [field])
                if not is_valid:
                    return False, f"{field} cannot be empty"

    for field, max_length in (('customerName', MAX_NAME_LENGTH),
                              ('address', MAX_ADDRESS_LENGTH),
                              ('problemDesc', MAX_PROBLEM_LENGTH)):
        if field in data:
            is_valid, error = validate_string_length(data[field], min_length=1, max_length=max_length)
            if not is_valid:
                return False, f"Invalid {field}: {error}"

    if 'phone' in data:
        is_valid, error = validate_phone(data['phone'])
        if not is_valid:
            return False, f"Invalid phone: {error}"

    if 'callType' in data:
        is_valid, error = validate_choice(data['callType'], CALL_TYPES)
        if not is_valid:
            return False, f"Invalid callType: {error}"

    if 'status' in data and data['status'] is not None:
        is_valid, error = validate_choice(data['status'], CALL_STATUSES)
        if not is_valid:
            return False, f"Invalid status: {error}"

    if data.get('landlordName'):
        is_valid, error = validate_string_length(data['landlordName'], max_length=MAX_NAME_LENGTH)
        if not is_valid:
            return False, f"Invalid landlordName: {error}"

    if data.get('modelNumber'):
        model_number = data['modelNumber']
        is_valid, error = validate_string_length(model_number, max_length=MAX_MODEL_NUMBER_LENGTH)
        if not is_valid:
            return False, f"Invalid modelNumber: {error}"
        if not MODEL_NUMBER_PATTERN.match(model_number.strip()):
            return False, "Invalid modelNumber: unexpected characters"

    if data.get('scheduledAt'):
        try:
            parse_datetime(data['scheduledAt'], 'scheduledAt')
        except ValidationError as e:
            return False, e.message

    return True, None


def validate_work_log_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate a work log create (or partial update) payload

    Args:
        data: Request data dictionary
        partial: True for updates

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    required = ['notes'] if partial else ['callId', 'notes']
    if partial:
        if 'notes' in data:
            is_valid, error = validate_required_fields(data, required)
            if not is_valid:
                return False, "notes cannot be empty"
    else:
        is_valid, error = validate_required_fields(data, required)
        if not is_valid:
            return False, error

    if 'notes' in data:
        is_valid, error = validate_string_length(data['notes'], min_length=1, max_length=MAX_NOTES_LENGTH)
        if not is_valid:
            return False, f"Invalid notes: {error}"

    if data.get('partsUsed'):
        is_valid, error = validate_string_length(data['partsUsed'], max_length=MAX_NOTES_LENGTH)
        if not is_valid:
            return False, f"Invalid partsUsed: {error}"

    return True, None


def validate_parts_analysis_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Validate a parts analysis request (model number plus problem description)"""
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    is_valid, error = validate_required_fields(data, ['modelNumber', 'problemDescription'])
    if not is_valid:
        return False, error

    is_valid, error = validate_string_length(data['modelNumber'], min_length=1, max_length=MAX_MODEL_NUMBER_LENGTH)
    if not is_valid:
        return False, f"Invalid modelNumber: {error}"

    is_valid, error = validate_string_length(data['problemDescription'], min_length=1, max_length=MAX_PROBLEM_LENGTH)
    if not is_valid:
        return False, f"Invalid problemDescription: {error}"

    return True, None
