"""
Error taxonomy and the JSON error envelope.

Every failure surfaced to a client is rendered as ``{"error": ..., "details": ...}``
with ``details`` omitted when there is nothing to add.
"""
import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class RentalError(Exception):
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(RentalError):
    status_code = 400


class MissingIdentity(RentalError):
    status_code = 400

    def __init__(self, message='User ID or guest session ID required', details=None):
        super().__init__(message, details)


class NotFound(RentalError):
    status_code = 404


class AuthFailure(RentalError):
    status_code = 401


class UploadError(RentalError):
    status_code = 500


class TransactionFailure(RentalError):
    """Raised after an order placement was rolled back.

    ``cause`` is the first error hit inside the transaction; its message is
    reported as ``details``.
    """
    status_code = 500

    def __init__(self, cause):
        super().__init__('Failed to place order', details=str(cause))
        self.cause = cause


def _is_production():
    return current_app.config.get('APP_ENV') == 'production'


def error_response(message, status_code, details=None, **extra):
    payload = {'error': message}
    if details:
        payload['details'] = details
    payload.update(extra)
    return jsonify(payload), status_code


def register_error_handlers(app):
    @app.errorhandler(RentalError)
    def handle_rental_error(error):
        if error.status_code >= 500:
            logger.error(f"[ERROR] {request.method} {request.path}: {error.message} ({error.details})")
        else:
            logger.info(f"[ERROR] {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        if request.path.startswith('/api'):
            logger.info(f"404 - API endpoint not found: {request.method} {request.path}")
            return error_response('API endpoint not found', 404,
                                  path=request.path, method=request.method)
        return error_response('Not found', 404)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return error_response(error.name, error.code, details=error.description)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception(f"[ERROR] Unhandled error on {request.method} {request.path}")
        if _is_production():
            return error_response('Internal server error', 500)
        return error_response('Internal server error', 500, details=str(error))
