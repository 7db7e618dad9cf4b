from flask import Blueprint, Response, request, jsonify
from middleware.auth import require_admin, require_admin_viewer
from services.audit_log import iso_timestamp
from services.container import get_guard_services
from services.errors import HTTP_STATUS, POLICY_VIOLATION, VALIDATION_FAILURE
from utils.monitoring import error_tracker, performance_monitor
from utils.pagination import paginate, paginate_response
from utils.request_data import json_body, text_field

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/activity', methods=['GET'])
@require_admin_viewer()
def list_activity():
    """Suspicious activity log, oldest first"""
    entries = get_guard_services().audit_log.list_all()
    return jsonify(paginate_response(paginate(entries))), 200


@admin_bp.route('/blocked', methods=['GET'])
@require_admin_viewer()
def list_blocked():
    blocked = get_guard_services().block_registry.list_active()
    return jsonify({
        'blocked': [entry.to_dict() for entry in blocked],
        'total': len(blocked)
    }), 200


@admin_bp.route('/blocked', methods=['POST'])
@require_admin()
def block_fingerprint():
    data = json_body()
    fingerprint = (text_field(data, 'fingerprint') or '').strip()
    if not fingerprint:
        return jsonify({'error': 'fingerprint is required'}), 400

    registry = get_guard_services().block_registry
    duration_ms = data.get('duration_ms', registry.default_duration_ms)
    if not isinstance(duration_ms, int) or isinstance(duration_ms, bool) or duration_ms <= 0:
        return jsonify({'error': 'duration_ms must be a positive integer'}), 400

    entry = registry.block(fingerprint, duration_ms, reason=text_field(data, 'reason') or 'Blocked by admin')
    if entry is None:
        return jsonify({'error': 'Storage unavailable'}), 503
    return jsonify(entry.to_dict()), 201


@admin_bp.route('/export', methods=['GET'])
@require_admin_viewer()
def export_logs():
    services = get_guard_services()
    filename = f"bot-logs-{iso_timestamp(services.clock())}.json"
    return Response(
        services.audit_log.export_json(),
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@admin_bp.route('/logs', methods=['DELETE'])
@require_admin()
def clear_logs():
    """Clear the audit log and the block list"""
    if not get_guard_services().clear_all():
        return jsonify({'error': 'Storage unavailable'}), 503
    return jsonify({'message': 'Cleared all bot detection logs'}), 200


@admin_bp.route('/password', methods=['POST'])
@require_admin()
def change_password():
    data = json_body()
    fields = [text_field(data, name) for name in ('current_password', 'new_password', 'confirm_password')]
    if None in fields:
        return jsonify({
            'ok': False,
            'failure': VALIDATION_FAILURE,
            'error': 'Passwords must be text.'
        }), HTTP_STATUS[VALIDATION_FAILURE]
    current_password, new_password, confirm_password = (field.strip() for field in fields)

    if new_password != confirm_password:
        return jsonify({
            'ok': False,
            'failure': POLICY_VIOLATION,
            'error': 'New passwords do not match.'
        }), HTTP_STATUS[POLICY_VIOLATION]

    result = request.session_manager.change_admin_password(current_password, new_password)
    if not result.ok:
        return jsonify(result.to_dict()), HTTP_STATUS[result.failure]
    return jsonify({'ok': True, 'message': 'Password updated successfully.'}), 200


@admin_bp.route('/stats', methods=['GET'])
@require_admin_viewer()
def stats():
    return jsonify({
        'requests': performance_monitor.get_stats(),
        'errors': error_tracker.get_error_stats()
    }), 200
