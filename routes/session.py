from flask import Blueprint, current_app, request, jsonify
from middleware.auth import require_user
from services.container import get_session_manager
from services.errors import HTTP_STATUS
from services.session_manager import Role
from utils.request_data import json_body

session_bp = Blueprint('session', __name__)


@session_bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    session_manager = get_session_manager()

    result = session_manager.login(data.get('username', ''), data.get('password'))
    if not result.ok:
        return jsonify(result.to_dict()), HTTP_STATUS[result.failure]

    return jsonify(result.to_dict()), 200


@session_bp.route('/logout', methods=['POST'])
def logout():
    get_session_manager().logout()
    return jsonify({'message': 'Logged out'}), 200


@session_bp.route('/me', methods=['GET'])
def me():
    session_manager = get_session_manager()
    user = session_manager.get_current_user()
    return jsonify({
        'authenticated': user is not None,
        'user': user.to_dict() if user else None,
        'isAdmin': session_manager.is_admin(),
        'isTeacher': session_manager.is_teacher(),
        'isAdminViewer': session_manager.is_admin_viewer()
    }), 200


@session_bp.route('/permissions', methods=['GET'])
@require_user()
def permissions():
    """Edit/delete rights of the current user on posts by ?author="""
    author = request.args.get('author', '').strip()
    if not author:
        return jsonify({'error': 'author is required'}), 400

    session_manager = request.session_manager
    return jsonify({
        'author': author,
        'canEdit': session_manager.can_edit(author),
        'canDelete': session_manager.can_delete(author)
    }), 200


@session_bp.route('/role-password', methods=['GET'])
def role_password_status():
    return jsonify({'adminPasswordExists': get_session_manager().has_admin_password()}), 200


@session_bp.route('/role-password', methods=['POST'])
def bootstrap_role_password():
    """
    Create the secret for a gated role on first use

    The generated password is returned exactly once, when it is created, and
    only while DISCLOSE_BOOTSTRAP_PASSWORD is on.
    """
    data = json_body()
    session_manager = get_session_manager()
    role = session_manager.role_for(data.get('username', ''))

    if role is Role.ADMIN:
        result = session_manager.ensure_admin_password()
    elif role is Role.TEACHER:
        result = session_manager.ensure_teacher_password()
    else:
        return jsonify({'error': 'Only reserved role names have passwords'}), 400

    if result.failure:
        return jsonify(result.to_dict()), HTTP_STATUS[result.failure]

    body = result.to_dict()
    if not current_app.config['DISCLOSE_BOOTSTRAP_PASSWORD']:
        body.pop('password', None)
    return jsonify(body), 201 if result.created else 200
