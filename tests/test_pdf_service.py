"""
Tests for daily sheet PDF rendering
"""
import io
import os
import pytest
from datetime import date, datetime

from services import pdf_service
from services.pdf_service import (
    PDFGenerationError,
    call_count_label,
    default_filename,
    export_daily_sheet,
    format_generated_time,
    format_long_date,
    format_scheduled_time,
    render_daily_sheet,
)

DAY = date(2024, 3, 4)


@pytest.fixture
def calls(sample_call_data):
    first = dict(sample_call_data, id='c1', status='Scheduled', scheduledAt='2024-03-04T09:05:00')
    second = dict(sample_call_data, id='c2', customerName='Jane <Doe> & Co', status='New',
                  scheduledAt=None, landlordName=None, modelNumber=None)
    return [first, second]


@pytest.mark.unit
class TestFormatting:
    """Tests for the text helpers used on the sheet"""

    def test_default_filename(self):
        assert default_filename(DAY) == 'daily-service-sheet-2024-03-04.pdf'

    def test_long_date(self):
        assert format_long_date(DAY) == 'Monday, March 4, 2024'

    def test_generated_time(self):
        assert format_generated_time(datetime(2024, 3, 4, 12, 0)) == 'Mar 4, 2024 12:00 PM'
        assert format_generated_time(datetime(2024, 3, 4, 0, 30)) == 'Mar 4, 2024 12:30 AM'

    def test_scheduled_time(self):
        assert format_scheduled_time('2024-03-04T09:05:00') == '9:05 AM'
        assert format_scheduled_time('2024-03-04T15:30:00') == '3:30 PM'
        assert format_scheduled_time(None) == 'Not scheduled'

    def test_call_count(self):
        assert call_count_label(1) == '1 service call'
        assert call_count_label(0) == '0 service calls'
        assert call_count_label(3) == '3 service calls'


@pytest.mark.unit
class TestRendering:
    """Tests for building the PDF"""

    def test_render_to_buffer(self, calls):
        buffer = io.BytesIO()
        result = render_daily_sheet(calls, DAY, buffer, generated_at=datetime(2024, 3, 4, 12, 0))

        assert result is buffer
        assert buffer.getvalue().startswith(b'%PDF')

    def test_render_empty_day(self):
        buffer = render_daily_sheet([], DAY, io.BytesIO())
        assert buffer.getvalue().startswith(b'%PDF')

    def test_minimal_layout_fallback(self, calls, monkeypatch):
        """Test that the plain layout is used when the styled one fails"""
        def broken(*args):
            raise ValueError('bad table')

        monkeypatch.setattr(pdf_service, 'build_styled_story', broken)
        buffer = render_daily_sheet(calls, DAY, io.BytesIO())

        assert buffer.getvalue().startswith(b'%PDF')

    def test_all_layouts_fail(self, calls, monkeypatch):
        def broken(*args):
            raise ValueError('bad table')

        monkeypatch.setattr(pdf_service, 'build_styled_story', broken)
        monkeypatch.setattr(pdf_service, 'build_minimal_story', broken)

        with pytest.raises(PDFGenerationError) as exc_info:
            render_daily_sheet(calls, DAY, io.BytesIO())
        assert 'bad table' in str(exc_info.value)


@pytest.mark.unit
class TestExport:
    """Tests for writing the sheet to disk"""

    def test_default_path(self, calls, tmp_path):
        path = export_daily_sheet(calls, DAY, str(tmp_path))

        assert path == os.path.join(str(tmp_path), 'daily-service-sheet-2024-03-04.pdf')
        with open(path, 'rb') as f:
            assert f.read(4) == b'%PDF'

    def test_explicit_path_creates_folder(self, calls, tmp_path):
        target = tmp_path / 'sheets' / 'monday.pdf'
        path = export_daily_sheet(calls, DAY, str(tmp_path), file_path=str(target))

        assert path == str(target)
        assert target.exists()
