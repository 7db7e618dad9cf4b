"""
Per-session CSRF tokens for guarded form submissions

A token is issued into the tab-scoped store when a form is rendered and must
be echoed back with the submission.
"""
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

CSRF_TOKEN_KEY = 'csrfToken'


def generate_csrf_token():
    return secrets.token_hex(32)


def verify_csrf_token(token, stored_token):
    if not isinstance(token, str) or not token or not stored_token:
        return False
    return hmac.compare_digest(token.encode('utf-8'), stored_token.encode('utf-8'))


class CsrfTokens:
    def __init__(self, session_store):
        self.session_store = session_store

    def issue(self):
        """Store and return a fresh token, replacing any earlier one"""
        token = generate_csrf_token()
        self.session_store.set(CSRF_TOKEN_KEY, token)
        return token

    def validate(self, token):
        if verify_csrf_token(token, self.session_store.get(CSRF_TOKEN_KEY)):
            return True
        logger.warning("Rejected submission with missing or mismatched CSRF token")
        return False
