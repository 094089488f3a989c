from flask import jsonify, request
from werkzeug.exceptions import HTTPException
import logging

logger = logging.getLogger(__name__)

# User-facing messages for the HTTP errors the API raises itself
ERROR_MESSAGES = {
    400: 'Bad request. Please check your input.',
    500: 'Internal server error. Please try again later.',
}


def _error_response(message, status_code):
    return jsonify({'status': 'error', 'message': message}), status_code


def register_error_handlers(app):
    """Register JSON error envelopes for the TrustCareConnect API"""

    @app.errorhandler(404)
    def handle_404(e):
        logger.warning('404 error: %s - Path: %s, Method: %s',
                      e, request.path, request.method)
        return _error_response(f'Not Found: The requested URL {request.path} was not found on the server.', 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        logger.warning('405 error: %s - Path: %s, Method: %s',
                      e, request.path, request.method)
        return _error_response(f'Method {request.method} is not allowed for {request.path}.', 405)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        # 400, 413, 415 and any other HTTP error keep their own status code
        log = logger.error if e.code >= 500 else logger.warning
        log('%s error: %s - Path: %s, Method: %s', e.code, e, request.path, request.method)
        return _error_response(ERROR_MESSAGES.get(e.code, e.description or e.name), e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.error('Unexpected error: %s - Path: %s, Method: %s',
                    e, request.path, request.method, exc_info=True)
        return _error_response('An unexpected error occurred. Please try again later.', 500)
