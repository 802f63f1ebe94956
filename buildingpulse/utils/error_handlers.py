"""
Error Handlers

This module contains error handling utilities and functions.
"""

from flask import jsonify


def render_error_response(error_code, message, status_code):
    """Render a JSON error payload with the given status"""
    return jsonify({
        'success': False,
        'error_code': error_code,
        'message': message
    }), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(404)
    def not_found(error):
        return render_error_response('NOT_FOUND',
            'The requested resource does not exist.', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return render_error_response('METHOD_NOT_ALLOWED',
            'The method is not allowed for the requested URL.', 405)

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        return render_error_response('INTERNAL_SERVER_ERROR',
            'Something went wrong on our end. Please try again later.', 500)
