from flask import jsonify
from werkzeug.exceptions import HTTPException
import logging

from services.errors import HTTP_STATUS, STORAGE_UNAVAILABLE, StorageUnavailable
from utils.monitoring import request_logger_middleware, error_tracker

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Render errors as JSON"""

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(StorageUnavailable)
    def handle_storage_error(e):
        error_tracker.log_error('StorageUnavailable', str(e))
        return jsonify({
            'error': 'Storage unavailable',
            'failure': STORAGE_UNAVAILABLE
        }), HTTP_STATUS[STORAGE_UNAVAILABLE]

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error: {e}")
        error_tracker.log_error(e.__class__.__name__, str(e))
        return jsonify({'error': 'Internal server error'}), 500


def request_logger(app):
    request_logger_middleware(app)


__all__ = ['register_error_handlers', 'request_logger']
