"""
Daily Sheet Routes Blueprint

- /api/daily-sheet: Calls for a date (?date=YYYY-MM-DD, default today in UTC), or the PDF with ?format=pdf
- /api/daily-sheet/export: Write the day's PDF into the output folder
"""

import io
import logging
from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, send_file

from validators import ValidationError, parse_date

logger = logging.getLogger(__name__)

# Create blueprint
daily_sheet_bp = Blueprint('daily_sheet_bp', __name__)


def _requested_day(value):
    return parse_date(value, 'date') or datetime.utcnow().date()


@daily_sheet_bp.route('/api/daily-sheet', methods=['GET'])
def get_daily_sheet():
    """Calls for a day as JSON, or as a downloadable PDF."""
    try:
        from database.connection import get_db_session
        from app.api.common import build_call_service
        from services.pdf_service import render_daily_sheet, default_filename

        day = _requested_day(request.args.get('date'))

        with get_db_session() as session:
            calls = build_call_service(session).get_calls_for_date(day)

        if request.args.get('format') == 'pdf':
            buffer = render_daily_sheet(calls, day, io.BytesIO())
            buffer.seek(0)
            return send_file(buffer, mimetype='application/pdf', as_attachment=True,
                             download_name=default_filename(day))

        return jsonify({'success': True, 'date': day.isoformat(), 'serviceCalls': calls, 'count': len(calls)})

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error building daily sheet: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@daily_sheet_bp.route('/api/daily-sheet/export', methods=['POST'])
def export_daily_sheet_pdf():
    """
    Export the day's sheet to a PDF file.

    Body: {"date": "YYYY-MM-DD", "title": optional, "filename": optional}.
    When "calls" is given those records are printed instead of the stored ones.
    """
    try:
        import os
        from werkzeug.utils import secure_filename
        from database.connection import get_db_session
        from app.api.common import build_call_service
        from services.pdf_service import export_daily_sheet, DEFAULT_TITLE

        data = request.get_json(silent=True) or {}
        day = _requested_day(data.get('date'))

        calls = data.get('calls')
        if calls is None:
            with get_db_session() as session:
                calls = build_call_service(session).get_calls_for_date(day)
        elif not isinstance(calls, list) or not all(isinstance(call, dict) for call in calls):
            raise ValidationError("calls must be a list of service call objects", 'calls')

        output_folder = current_app.config['OUTPUT_FOLDER']
        file_path = None
        if data.get('filename'):
            file_path = os.path.join(output_folder, secure_filename(data['filename']))

        path = export_daily_sheet(calls, day, output_folder, file_path=file_path,
                                  title=data.get('title') or DEFAULT_TITLE)
        return jsonify({'success': True, 'path': path, 'count': len(calls)})

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error exporting daily sheet: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
