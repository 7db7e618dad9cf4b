from functools import wraps
from flask import request, jsonify
from services.container import get_session_manager


def _load_user():
    session_manager = get_session_manager()
    user = session_manager.get_current_user()
    request.current_user = user
    request.session_manager = session_manager
    return user


def require_user():
    """
    Require an active session user
    - Attaches the SessionUser and SessionManager to the request
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if _load_user() is None:
                return jsonify({
                    'error': 'Login required',
                    'authenticated': False
                }), 401
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin_viewer():
    """
    Require a role that may view the admin dashboard (admin or teacher)
    Teachers get read-only access; mutating routes use require_admin()
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if _load_user() is None:
                return jsonify({
                    'error': 'Login required',
                    'authenticated': False
                }), 401
            if not request.session_manager.is_admin_viewer():
                return jsonify({'error': 'Admin or teacher access required'}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin():
    """Require the admin role"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if _load_user() is None:
                return jsonify({
                    'error': 'Login required',
                    'authenticated': False
                }), 401
            if not request.session_manager.is_admin():
                return jsonify({'error': 'Admin access required'}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator
