from flask import Blueprint, jsonify, current_app
import logging

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)

@main_bp.route('/')
def index():
    """Service banner with the API's entry points"""
    logger.info('Serving index')
    return jsonify({
        'status': 'success',
        'service': 'TrustCareConnect',
        'message': current_app.extensions['care_service'].health_check(),
        'endpoints': ['/api/health', '/api/stats', '/api/patients', '/api/doctors',
                      '/api/queries', '/api/ai/query', '/api/ai/providers']
    })

@main_bp.route('/debug/routes', methods=['GET'])
def debug_routes():
    """List all available routes for debugging"""
    routes = []
    for rule in current_app.url_map.iter_rules():
        routes.append({
            'endpoint': rule.endpoint,
            'methods': sorted(rule.methods - {'HEAD', 'OPTIONS'}),
            'path': str(rule)
        })
    return jsonify({
        'status': 'success',
        'routes': routes
    })
