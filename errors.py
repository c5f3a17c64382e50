import logging
import traceback

from flask import jsonify, current_app
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from models import db

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An error that maps onto an HTTP status plus a short error code and a message."""
    status_code = 500
    error = 'Internal server error'

    def __init__(self, message=None, error=None, status_code=None):
        super().__init__(message or self.error)
        self.message = message or self.error
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(ApiError):
    status_code = 400
    error = 'Bad request'


class InvalidImageError(BadRequestError):
    error = 'Invalid image'


class ForbiddenError(ApiError):
    status_code = 403
    error = 'Forbidden'


class NotFoundError(ApiError):
    status_code = 404
    error = 'Not found'


class ConflictError(ApiError):
    status_code = 409
    error = 'Duplicate entry'


class GenerationFailedError(ApiError):
    status_code = 500
    error = 'Generation failed'


class StorageError(ApiError):
    status_code = 500
    error = 'Operation failed'


def error_response(status_code, error, message, exc=None):
    body = {'success': False, 'error': error, 'message': message}
    if exc is not None and current_app.config.get('DEBUG'):
        body['stack'] = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return jsonify(body), status_code


def register_error_handlers(app):
    """Translate exceptions into the JSON error envelope."""

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}", exc_info=True)
        else:
            logger.warning(f"{type(e).__name__} ({e.status_code}): {e.message}")
        return error_response(e.status_code, e.error, e.message, e if e.status_code >= 500 else None)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        first = e.errors()[0] if e.errors() else {}
        field = '.'.join(str(part) for part in first.get('loc', ()))
        message = f"{field}: {first.get('msg')}" if field else str(first.get('msg', e))
        logger.warning(f"Request validation failed: {message}")
        return error_response(400, 'Missing required fields', message)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        max_mb = current_app.config['MAX_FILE_SIZE'] // (1024 * 1024)
        return error_response(400, 'File too large', f'File size must be less than {max_mb}MB')

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        logger.error(f"Integrity error: {e.orig}")
        return error_response(ConflictError.status_code, ConflictError.error, 'Resource already exists')

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return error_response(e.code, e.name, e.description)

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Log all unexpected exceptions."""
        logger.error(f"EXCEPTION OCCURRED: {type(e).__name__}: {str(e)}", exc_info=True)
        db.session.rollback()
        return error_response(500, 'Internal server error', 'An unexpected error occurred', e)


def success_response(data=None, message=None, status_code=200):
    body = {'success': True}
    if message:
        body['message'] = message
    body['data'] = data
    return jsonify(body), status_code
