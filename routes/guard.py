from flask import Blueprint, request, jsonify, abort
from middleware.csrf import require_csrf_token
from services.container import get_csrf_tokens, get_guard_services
from services.errors import HTTP_STATUS, RATE_LIMITED
from services.fingerprint import ClientEnvironment, ProbeResult, advanced_fingerprint
from utils.request_data import as_dict, json_body

guard_bp = Blueprint('guard', __name__)


def _client_from_request(data):
    return ClientEnvironment.from_request(request, as_dict(data.get('client')))


def _reported_probe(probes, name):
    """Probe replaying what the page reported for one capability"""
    reported = ProbeResult.from_dict(probes.get(name))
    return lambda: reported


def _known_action(action):
    if action not in get_guard_services().guard.rate_limits:
        abort(404, description=f'Unknown action: {action}')


@guard_bp.route('/fingerprint', methods=['POST'])
def fingerprint():
    """Basic and advanced fingerprint of the posted client environment"""
    data = json_body()
    probes = as_dict(data.get('probes'))
    client = _client_from_request(data)

    extended = advanced_fingerprint(
        client,
        canvas_probe=_reported_probe(probes, 'canvas'),
        webgl_probe=_reported_probe(probes, 'webgl')
    )
    return jsonify({
        'fingerprint': extended.basic,
        'advancedFingerprint': extended.to_dict()
    }), 200


@guard_bp.route('/inspect', methods=['POST'])
def inspect():
    data = json_body()
    probes = as_dict(data.get('probes'))
    inspection = get_guard_services().guard.inspect_client(
        _client_from_request(data),
        canvas_probe=_reported_probe(probes, 'canvas'),
        webgl_probe=_reported_probe(probes, 'webgl')
    )
    return jsonify(inspection.to_dict()), 200


@guard_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Issue the token a form echoes back with its submission"""
    return jsonify({'csrfToken': get_csrf_tokens().issue()}), 200


@guard_bp.route('/submissions/<action>', methods=['POST'])
@require_csrf_token()
def check_submission(action):
    """Run the submission guard before a post or comment is accepted"""
    _known_action(action)
    data = json_body()
    submission = {
        'title': data.get('title', ''),
        'content': data.get('content', ''),
        'honeypot': data.get('honeypot', '')
    }
    # Comments have no title of their own
    if action == 'comment' and not submission['title']:
        submission['title'] = data.get('post_title', 'Comment')

    decision = get_guard_services().guard.evaluate(action, submission, _client_from_request(data))
    if decision.allowed:
        return jsonify(decision.to_dict()), 200

    response = jsonify(decision.to_dict())
    response.status_code = HTTP_STATUS[decision.failure]
    if decision.failure == RATE_LIMITED:
        response.headers['Retry-After'] = str(decision.seconds_remaining)
    return response


@guard_bp.route('/submissions/<action>/record', methods=['POST'])
@require_csrf_token()
def record_submission(action):
    """Start the cooldown after the post or comment was stored"""
    _known_action(action)
    data = json_body()
    recorded = get_guard_services().guard.record_success(action, _client_from_request(data))
    return jsonify({'recorded': recorded}), 200 if recorded else 503
