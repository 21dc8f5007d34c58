"""
Parts Analysis Routes Blueprint

- /api/parts/analyze: Recommend parts for a model number and problem description
- /api/service-calls/<id>/parts-analysis: Run the analysis for a stored call and save it
"""

import logging
from flask import Blueprint, jsonify

from validators import ValidationError, validate_parts_analysis_request

logger = logging.getLogger(__name__)

# Create blueprint
parts_bp = Blueprint('parts_bp', __name__)


def _parts_service():
    from app.api.common import get_integration
    from services.parts_analysis_service import PartsAnalysisService

    return get_integration('parts_analysis_service') or PartsAnalysisService()


@parts_bp.route('/api/parts/analyze', methods=['POST'])
def analyze_parts():
    """Body: {"modelNumber": "...", "problemDescription": "..."}"""
    try:
        from app.api.common import get_json_body

        data = get_json_body()
        is_valid, error = validate_parts_analysis_request(data)
        if not is_valid:
            raise ValidationError(error)

        result = _parts_service().analyze(data['modelNumber'].strip(), data['problemDescription'].strip())
        return jsonify(result)

    except ValidationError as e:
        return jsonify({'success': False, 'error': e.message}), 400
    except Exception as e:
        logger.error(f"Error analyzing parts: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@parts_bp.route('/api/service-calls/<call_id>/parts-analysis', methods=['POST'])
def analyze_call_parts(call_id):
    """Analyze a stored call synchronously and save the result on it."""
    try:
        from database.connection import get_db_session
        from services.call_service import store_parts_analysis
        from services.service_call_repository import ServiceCallRepository

        with get_db_session() as session:
            call = ServiceCallRepository(session).get_by_id(call_id)
            if call is None:
                return jsonify({'success': False, 'error': 'Service call not found'}), 404
            if not call.get('modelNumber'):
                return jsonify({'success': False, 'error': 'Service call has no model number'}), 400

            updated = store_parts_analysis(session, _parts_service(), call_id,
                                           call['modelNumber'], call['problemDesc'])
            return jsonify({'success': True, 'serviceCall': updated})

    except Exception as e:
        logger.error(f"Error analyzing parts for call {call_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
