"""
Tests for input validation utilities
"""
import pytest
from datetime import datetime, date
from validators import (
    ValidationError,
    validate_required_fields,
    validate_phone,
    validate_string_length,
    validate_choice,
    sanitize_string,
    parse_datetime,
    parse_date,
    validate_service_call_request,
    validate_work_log_request,
    validate_parts_analysis_request,
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required fields validation"""

    def test_validate_all_fields_present(self):
        """Test validation passes when all fields present"""
        is_valid, error = validate_required_fields({'a': 'x', 'b': 'y'}, ['a', 'b'])
        assert is_valid is True
        assert error is None

    def test_validate_missing_field(self):
        """Test validation fails when field missing"""
        is_valid, error = validate_required_fields({'a': 'x'}, ['a', 'b'])
        assert is_valid is False
        assert 'b' in error

    def test_validate_blank_field(self):
        """Test validation fails when field is only whitespace"""
        is_valid, error = validate_required_fields({'a': '   '}, ['a'])
        assert is_valid is False


@pytest.mark.unit
class TestPhoneValidation:
    """Tests for phone number validation"""

    def test_valid_phone_with_separators(self):
        """Test that common separators are accepted"""
        assert validate_phone('(555) 123-4567')[0] is True
        assert validate_phone('+1 555.123.4567')[0] is True

    def test_invalid_phone_letters(self):
        """Test that letters are rejected"""
        is_valid, error = validate_phone('call me maybe')
        assert is_valid is False
        assert 'Invalid phone' in error

    def test_empty_phone(self):
        """Test that an empty phone is rejected"""
        assert validate_phone('')[0] is False


@pytest.mark.unit
class TestStringHelpers:
    """Tests for string length, choice and sanitizing"""

    def test_string_too_long(self):
        """Test maximum length"""
        is_valid, error = validate_string_length('x' * 11, max_length=10)
        assert is_valid is False
        assert 'too long' in error

    def test_choice(self):
        """Test choice validation"""
        assert validate_choice('New', ('New', 'Completed'))[0] is True
        is_valid, error = validate_choice('Done', ('New', 'Completed'))
        assert is_valid is False
        assert 'New, Completed' in error

    def test_sanitize_string_removes_null_bytes(self):
        """Test that null bytes are removed and whitespace trimmed"""
        assert sanitize_string('  hello\x00 ') == 'hello'

    def test_sanitize_string_truncates(self):
        """Test truncation"""
        assert sanitize_string('abcdef', max_length=3) == 'abc'


@pytest.mark.unit
class TestDateParsing:
    """Tests for timestamp and date parsing"""

    def test_parse_iso_with_timezone_converts_to_utc(self):
        """Test that offsets are converted to naive UTC"""
        assert parse_datetime('2024-03-04T09:00:00-05:00') == datetime(2024, 3, 4, 14, 0, 0)

    def test_parse_zulu_time(self):
        """Test a Z suffixed timestamp"""
        assert parse_datetime('2024-03-04T09:30:00Z') == datetime(2024, 3, 4, 9, 30, 0)

    def test_parse_empty_is_none(self):
        """Test that empty values parse to None"""
        assert parse_datetime('') is None
        assert parse_datetime(None) is None

    def test_parse_invalid_raises(self):
        """Test that garbage raises ValidationError naming the field"""
        with pytest.raises(ValidationError) as exc_info:
            parse_datetime('not a date at all', 'scheduledAt')
        assert exc_info.value.field == 'scheduledAt'

    def test_parse_date(self):
        """Test calendar date parsing"""
        assert parse_date('2024-03-04') == date(2024, 3, 4)
        assert parse_date('2024-03-04T18:00:00') == date(2024, 3, 4)
        assert parse_date(None) is None


@pytest.mark.unit
class TestServiceCallRequest:
    """Tests for service call payload validation"""

    def test_valid_create(self, sample_call_data):
        """Test that a complete payload validates"""
        assert validate_service_call_request(sample_call_data) == (True, None)

    def test_missing_required_field(self, sample_call_data):
        """Test that a missing customer name fails"""
        del sample_call_data['customerName']
        is_valid, error = validate_service_call_request(sample_call_data)
        assert is_valid is False
        assert 'customerName' in error

    def test_invalid_call_type(self, sample_call_data):
        """Test that unknown call types fail"""
        sample_call_data['callType'] = 'Personal'
        is_valid, error = validate_service_call_request(sample_call_data)
        assert is_valid is False
        assert 'callType' in error

    def test_invalid_status(self, sample_call_data):
        """Test that unknown statuses fail"""
        sample_call_data['status'] = 'Done'
        is_valid, error = validate_service_call_request(sample_call_data)
        assert is_valid is False
        assert 'status' in error

    def test_invalid_scheduled_at(self, sample_call_data):
        """Test that an unparsable scheduled time fails"""
        sample_call_data['scheduledAt'] = 'sometime next week maybe'
        is_valid, error = validate_service_call_request(sample_call_data)
        assert is_valid is False
        assert 'scheduledAt' in error

    def test_partial_update_only_checks_given_fields(self):
        """Test that partial updates don't require every field"""
        assert validate_service_call_request({'status': 'OnHold'}, partial=True) == (True, None)

    def test_partial_update_rejects_blank_required_field(self):
        """Test that a partial update can't blank a required field"""
        is_valid, error = validate_service_call_request({'address': ''}, partial=True)
        assert is_valid is False
        assert 'address' in error

    def test_non_dict_body(self):
        """Test that a non-object body fails"""
        assert validate_service_call_request(['x'])[0] is False


@pytest.mark.unit
class TestWorkLogRequest:
    """Tests for work log payload validation"""

    def test_valid_create(self):
        """Test a valid work log"""
        assert validate_work_log_request({'callId': 'abc', 'notes': 'Replaced seal'}) == (True, None)

    def test_missing_call_id(self):
        """Test that callId is required on create"""
        is_valid, error = validate_work_log_request({'notes': 'Replaced seal'})
        assert is_valid is False
        assert 'callId' in error

    def test_partial_blank_notes(self):
        """Test that an update can't blank the notes"""
        is_valid, error = validate_work_log_request({'notes': ''}, partial=True)
        assert is_valid is False

    def test_partial_parts_only(self):
        """Test updating just the parts used"""
        assert validate_work_log_request({'partsUsed': 'DC96-01585B'}, partial=True) == (True, None)


@pytest.mark.unit
class TestPartsAnalysisRequest:
    """Tests for parts analysis request validation"""

    def test_valid(self):
        """Test a valid request"""
        data = {'modelNumber': 'WF45T6000AW', 'problemDescription': 'Leaking'}
        assert validate_parts_analysis_request(data) == (True, None)

    def test_missing_problem(self):
        """Test that the problem description is required"""
        is_valid, error = validate_parts_analysis_request({'modelNumber': 'WF45T6000AW'})
        assert is_valid is False
        assert 'problemDescription' in error
