"""
ERROR HANDLERS
==============

Translate service exceptions into JSON responses.
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from app.exceptions import CommitteeError

logger = logging.getLogger(__name__)


def error_response(message, status_code, description=None):
    response = jsonify({
        'error': message,
        'description': description or message,
    })
    response.status_code = status_code
    return response


def register_error_handlers(app):

    @app.errorhandler(CommitteeError)
    def handle_committee_error(e):
        return error_response(e.message, e.status_code, e.description)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return error_response(e.name, e.code, e.description)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception("Unhandled error")
        return error_response('Internal server error', 500)
