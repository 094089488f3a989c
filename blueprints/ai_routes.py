from datetime import datetime, timezone
import logging

from flask import Blueprint, request, jsonify, current_app

from utils.ai_drafting import DraftRequestError
from utils.clinical_parser import extract_action_items, parse_clinical_response

logger = logging.getLogger(__name__)

ai_bp = Blueprint('ai', __name__)


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


@ai_bp.route('/ai/query', methods=['POST'])
def process_ai_query():
    """Draft a clinical response; body: {queryText, condition, provider?}"""
    data = request.get_json(silent=True) or {}
    draft_service = current_app.extensions['draft_service']

    try:
        result = draft_service.process_query(
            data.get('queryText'),
            data.get('condition'),
            data.get('provider'),
        )
    except DraftRequestError as e:
        return jsonify({'status': 'error', 'message': str(e), 'code': e.code}), 400

    return jsonify({'status': 'success', 'data': result})


@ai_bp.route('/ai/providers', methods=['GET'])
def list_ai_providers():
    draft_service = current_app.extensions['draft_service']
    return jsonify({
        'status': 'success',
        'data': {
            'providers': draft_service.get_providers(),
            'timestamp': _timestamp(),
        }
    })


@ai_bp.route('/queries/<query_id>/draft', methods=['POST'])
def regenerate_draft(query_id):
    """Replace the AI draft of an open query"""
    result = current_app.extensions['care_service'].regenerate_draft(query_id)
    if not result.is_ok:
        status = 404 if result.error.endswith('not found') else 400
        return jsonify({'status': 'error', 'message': result.error}), status
    return jsonify({'status': 'success', 'data': result.value})


@ai_bp.route('/queries/<query_id>/draft/sections', methods=['GET'])
def get_draft_sections(query_id):
    """AI draft of a query split into clinical sections with action items"""
    query = current_app.extensions['care_service'].get_query(query_id)
    if query is None:
        return jsonify({'status': 'error', 'message': 'Query not found'}), 404

    sections = []
    for section in parse_clinical_response(query.ai_draft_response):
        entry = section.to_dict()
        entry['actionItems'] = extract_action_items(section.content)
        sections.append(entry)

    return jsonify({'status': 'success', 'data': {'queryId': query_id, 'sections': sections}})
