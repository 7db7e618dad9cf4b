from functools import wraps
from flask import current_app, request, jsonify
from services.container import get_csrf_tokens
from services.errors import CSRF_FAILURE, HTTP_STATUS

CSRF_HEADER = 'X-CSRF-Token'


def _submitted_token():
    token = request.headers.get(CSRF_HEADER)
    if token:
        return token
    data = request.get_json(silent=True)
    return data.get('csrfToken') if isinstance(data, dict) else None


def require_csrf_token():
    """
    Require the session's CSRF token in the X-CSRF-Token header or the
    csrfToken body field
    - Skipped when CSRF_PROTECTION is off
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if current_app.config['CSRF_PROTECTION'] and not get_csrf_tokens().validate(_submitted_token()):
                return jsonify({
                    'error': 'Invalid or missing CSRF token',
                    'failure': CSRF_FAILURE
                }), HTTP_STATUS[CSRF_FAILURE]
            return f(*args, **kwargs)

        return decorated_function
    return decorator
