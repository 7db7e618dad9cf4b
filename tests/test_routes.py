"""
Test the HTTP surface
"""
import json
import pytest
from tests.conftest import BROWSER_UA

CLIENT = {
    'userAgent': BROWSER_UA,
    'language': 'en-US',
    'timezoneOffset': -60,
    'screen': {'width': 1920, 'height': 1080},
    'hardwareConcurrency': 8,
    'url': 'https://hobbyhub.example/create'
}

PROBES = {
    'canvas': {'status': 'available', 'value': 'data:image/png;base64,iVBORw0'},
    'webgl': {'status': 'available', 'value': 'ANGLE (Intel)'}
}

POST = {
    'title': 'Getting Started with Photography',
    'content': 'A long enough valid hobby post body here.',
    'honeypot': '',
    'client': CLIENT
}


def login_admin(client):
    response = client.post('/api/session/role-password', json={'username': 'admin'})
    password = response.get_json()['password']
    client.post('/api/session/login', json={'username': 'admin', 'password': password})
    return password


class TestHealth:
    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert 'error' in response.get_json()


class TestGuardRoutes:
    """Test fingerprint and submission endpoints"""

    def test_fingerprint(self, client):
        first = client.post('/api/guard/fingerprint', json={'client': CLIENT, 'probes': PROBES}).get_json()
        second = client.post('/api/guard/fingerprint', json={'client': CLIENT}).get_json()

        assert first['fingerprint'] == second['fingerprint']
        assert first['advancedFingerprint']['canvas'] == 'data:image/png;base64,iVBORw0'
        assert second['advancedFingerprint']['canvas'] == 'HEADLESS_BROWSER'

    def test_inspect(self, client):
        data = client.post('/api/guard/inspect', json={'client': CLIENT, 'probes': PROBES}).get_json()
        assert data['isBotUA'] is False
        assert data['hasCanvasIssue'] is False

    def test_submission_flow(self, client, clock):
        response = client.post('/api/guard/submissions/post', json=POST)
        assert response.status_code == 200
        assert response.get_json()['allowed'] is True

        response = client.post('/api/guard/submissions/post/record', json={'client': CLIENT})
        assert response.get_json() == {'recorded': True}

        response = client.post('/api/guard/submissions/post', json=POST)
        assert response.status_code == 429
        assert response.headers['Retry-After'] == '30'
        assert response.get_json()['failure'] == 'rate_limited'

        clock.advance(30)
        assert client.post('/api/guard/submissions/post', json=POST).status_code == 200

    def test_comment_without_title(self, client):
        comment = {'content': 'Lovely shots, thanks for sharing!', 'client': CLIENT}
        response = client.post('/api/guard/submissions/comment', json=comment)
        assert response.status_code == 200

    def test_honeypot(self, client):
        response = client.post('/api/guard/submissions/post', json=dict(POST, honeypot='x'))
        assert response.status_code == 400
        assert response.get_json()['failure'] == 'validation_failure'

        # Device is now blocked
        response = client.post('/api/guard/submissions/post', json=POST)
        assert response.status_code == 403
        assert response.get_json()['failure'] == 'blocked'

    def test_unknown_action(self, client):
        assert client.post('/api/guard/submissions/vote', json=POST).status_code == 404
        assert client.post('/api/guard/submissions/vote/record', json=POST).status_code == 404


class TestSessionRoutes:
    """Test login and permissions"""

    def test_plain_login(self, client):
        response = client.post('/api/session/login', json={'username': 'alice'})
        assert response.status_code == 200

        me = client.get('/api/session/me').get_json()
        assert me['authenticated'] is True
        assert me['user'] == {'username': 'alice', 'role': 'user'}
        assert me['isAdminViewer'] is False

    def test_invalid_username(self, client):
        response = client.post('/api/session/login', json={'username': 'no spaces'})
        assert response.status_code == 400

    def test_logout(self, client):
        client.post('/api/session/login', json={'username': 'alice'})
        client.post('/api/session/logout')
        assert client.get('/api/session/me').get_json()['authenticated'] is False

    def test_permissions(self, client):
        assert client.get('/api/session/permissions?author=alice').status_code == 401

        client.post('/api/session/login', json={'username': 'alice'})
        own = client.get('/api/session/permissions?author=Alice').get_json()
        other = client.get('/api/session/permissions?author=bob').get_json()
        assert own['canEdit'] and own['canDelete']
        assert not other['canEdit'] and not other['canDelete']
        assert client.get('/api/session/permissions').status_code == 400

    def test_admin_password_bootstrap(self, client):
        assert client.get('/api/session/role-password').get_json() == {'adminPasswordExists': False}

        first = client.post('/api/session/role-password', json={'username': 'admin'})
        second = client.post('/api/session/role-password', json={'username': 'Admin'})
        assert first.status_code == 201
        assert len(first.get_json()['password']) == 12
        assert second.status_code == 200
        assert second.get_json() == {'created': False}
        assert client.get('/api/session/role-password').get_json() == {'adminPasswordExists': True}

    def test_bootstrap_rejects_plain_names(self, client):
        assert client.post('/api/session/role-password', json={'username': 'alice'}).status_code == 400

    def test_admin_login(self, client):
        login_admin(client)
        assert client.get('/api/session/me').get_json()['isAdmin'] is True

        client.post('/api/session/logout')
        response = client.post('/api/session/login', json={'username': 'admin', 'password': 'nope'})
        assert response.status_code == 401
        assert response.get_json()['failure'] == 'invalid_credential'
        assert client.get('/api/session/me').get_json()['authenticated'] is False


class TestAdminRoutes:
    """Test the admin dashboard endpoints"""

    def test_anonymous_is_rejected(self, client):
        assert client.get('/api/admin/activity').status_code == 401
        assert client.delete('/api/admin/logs').status_code == 401

    def test_plain_user_is_forbidden(self, client):
        client.post('/api/session/login', json={'username': 'alice'})
        assert client.get('/api/admin/activity').status_code == 403

    def test_teacher_is_read_only(self, client):
        client.post('/api/session/login', json={'username': 'teacher'})
        assert client.get('/api/admin/activity').status_code == 200
        assert client.get('/api/admin/blocked').status_code == 200
        assert client.get('/api/admin/export').status_code == 200
        assert client.delete('/api/admin/logs').status_code == 403
        assert client.post('/api/admin/blocked', json={'fingerprint': 'abc'}).status_code == 403
        assert client.post('/api/admin/password', json={}).status_code == 403

    def test_activity_listing(self, client):
        client.post('/api/guard/submissions/post', json=dict(POST, title='Hi'))
        login_admin(client)

        data = client.get('/api/admin/activity?per_page=10').get_json()
        assert data['pagination']['total'] == 1
        assert data['data'][0]['reason'] == 'Title too short'

    def test_block_and_clear(self, client):
        login_admin(client)
        response = client.post('/api/admin/blocked', json={'fingerprint': 'abc123', 'duration_ms': 60000})
        assert response.status_code == 201
        assert response.get_json()['reason'] == 'Blocked by admin'

        blocked = client.get('/api/admin/blocked').get_json()
        assert blocked['total'] == 1

        assert client.delete('/api/admin/logs').status_code == 200
        assert client.get('/api/admin/blocked').get_json()['total'] == 0

    @pytest.mark.parametrize('payload', [
        {},
        {'fingerprint': 'abc', 'duration_ms': 0},
        {'fingerprint': 'abc', 'duration_ms': 'soon'},
    ])
    def test_block_validation(self, client, payload):
        login_admin(client)
        assert client.post('/api/admin/blocked', json=payload).status_code == 400

    def test_export(self, client):
        client.post('/api/guard/submissions/post', json=dict(POST, honeypot='x'))
        login_admin(client)

        response = client.get('/api/admin/export')
        assert response.mimetype == 'application/json'
        assert 'attachment' in response.headers['Content-Disposition']

        data = json.loads(response.data)
        assert list(data.keys()) == ['exportDate', 'suspiciousActivity', 'blockedFingerprints']
        assert len(data['suspiciousActivity']) == 1
        assert len(data['blockedFingerprints']) == 1

    def test_change_password(self, client):
        password = login_admin(client)

        mismatch = client.post('/api/admin/password', json={
            'current_password': password,
            'new_password': 'hobby-admin-2026',
            'confirm_password': 'something-else'
        })
        assert mismatch.status_code == 400

        wrong = client.post('/api/admin/password', json={
            'current_password': 'wrong',
            'new_password': 'hobby-admin-2026',
            'confirm_password': 'hobby-admin-2026'
        })
        assert wrong.status_code == 401

        short = client.post('/api/admin/password', json={
            'current_password': password,
            'new_password': 'short',
            'confirm_password': 'short'
        })
        assert short.status_code == 400
        assert short.get_json()['failure'] == 'policy_violation'

        ok = client.post('/api/admin/password', json={
            'current_password': password,
            'new_password': 'hobby-admin-2026',
            'confirm_password': 'hobby-admin-2026'
        })
        assert ok.status_code == 200

        client.post('/api/session/logout')
        response = client.post('/api/session/login', json={'username': 'admin', 'password': 'hobby-admin-2026'})
        assert response.status_code == 200

    def test_stats(self, client):
        client.post('/api/session/login', json={'username': 'teacher'})
        data = client.get('/api/admin/stats').get_json()
        assert data['requests']['total_requests'] >= 1
        assert 'total_errors' in data['errors']


class TestMistypedInput:
    """JSON values of the wrong type are answered, never a server error"""

    @pytest.mark.parametrize('honeypot', [True, 1, ['http://bot.example']])
    def test_non_text_honeypot_blocks(self, client, honeypot):
        response = client.post('/api/guard/submissions/post', json=dict(POST, honeypot=honeypot))
        assert response.status_code == 400
        assert response.get_json()['reason'] == 'Honeypot field filled'

        response = client.post('/api/guard/submissions/post', json=POST)
        assert response.status_code == 403
        assert response.get_json()['failure'] == 'blocked'

    @pytest.mark.parametrize('field,value', [
        ('title', 12345),
        ('title', True),
        ('content', ['A long enough valid hobby post body here.']),
    ])
    def test_non_text_post_fields(self, client, field, value):
        response = client.post('/api/guard/submissions/post', json=dict(POST, **{field: value}))
        assert response.status_code == 400
        assert response.get_json()['reason'] == 'Invalid submission fields'

    @pytest.mark.parametrize('client_payload', ['x', ['x'], 7, dict(CLIENT, screen='wide')])
    def test_non_object_client(self, client, client_payload):
        response = client.post(
            '/api/guard/submissions/post',
            json=dict(POST, client=client_payload),
            headers={'User-Agent': BROWSER_UA}
        )
        assert response.status_code == 200

    def test_non_object_probes(self, client):
        data = client.post('/api/guard/fingerprint', json={'client': CLIENT, 'probes': 'x'}).get_json()
        assert data['advancedFingerprint']['canvas'] == 'HEADLESS_BROWSER'

    @pytest.mark.parametrize('url', [
        '/api/guard/submissions/post',
        '/api/guard/fingerprint',
        '/api/guard/inspect',
        '/api/session/login',
        '/api/session/role-password',
    ])
    def test_array_body(self, client, url):
        response = client.post(url, json=['title', 'content'])
        assert response.status_code < 500

    def test_non_text_username(self, client):
        response = client.post('/api/session/login', json={'username': 12345})
        assert response.status_code == 400
        assert response.get_json()['failure'] == 'validation_failure'

    def test_non_text_admin_password(self, client):
        client.post('/api/session/role-password', json={'username': 'admin'})
        response = client.post('/api/session/login', json={'username': 'admin', 'password': 12345})
        assert response.status_code == 401
        assert response.get_json()['failure'] == 'invalid_credential'

    def test_non_text_role_password_username(self, client):
        assert client.post('/api/session/role-password', json={'username': 42}).status_code == 400

    @pytest.mark.parametrize('payload', [
        {'current_password': 12345, 'new_password': 'hobby-admin-2026', 'confirm_password': 'hobby-admin-2026'},
        {'current_password': 'x', 'new_password': ['hobby-admin-2026'], 'confirm_password': 'hobby-admin-2026'},
    ])
    def test_non_text_change_password(self, client, payload):
        login_admin(client)
        response = client.post('/api/admin/password', json=payload)
        assert response.status_code == 400
        assert response.get_json()['failure'] == 'validation_failure'

    def test_non_text_block_fingerprint(self, client):
        login_admin(client)
        assert client.post('/api/admin/blocked', json={'fingerprint': 12345}).status_code == 400


class TestBootstrapDisclosure:
    def test_password_withheld(self, app, client):
        app.config['DISCLOSE_BOOTSTRAP_PASSWORD'] = False
        response = client.post('/api/session/role-password', json={'username': 'admin'})
        assert response.status_code == 201
        assert response.get_json() == {'created': True}
        assert client.get('/api/session/role-password').get_json() == {'adminPasswordExists': True}


class TestStats:
    def test_only_guard_rejections_are_counted(self, client):
        from utils.monitoring import performance_monitor

        before = dict(performance_monitor.get_stats())
        client.post('/api/session/login', json={'username': 'alice'})
        assert client.get('/api/admin/activity').status_code == 403
        client.post('/api/guard/submissions/post', json=dict(POST, title='Hi'))

        after = performance_monitor.get_stats()
        assert after['rejected_submissions'] == before['rejected_submissions'] + 1
        assert after['failed_requests'] == before['failed_requests'] + 1
