import logging
from supabase import create_client, Client
from typing import Optional

logger = logging.getLogger(__name__)


class SupabaseReauth:
    """Re-verifies the admin's current password against a Supabase project"""

    def __init__(self, url: str, key: str, email: str):
        if not url or not key or not email:
            raise ValueError("SUPABASE_URL, SUPABASE_ANON_KEY and ADMIN_REAUTH_EMAIL must be set")

        self.email = email
        try:
            self.client: Client = create_client(url, key)
        except Exception as e:
            logger.error(f"Failed to create Supabase client: {e}")
            raise

    def __call__(self, password: str) -> bool:
        """True if the Supabase account accepts password"""
        try:
            response = self.client.auth.sign_in_with_password({
                'email': self.email,
                'password': password
            })
        except Exception as e:
            logger.warning(f"Admin re-authentication failed: {e}")
            return False
        return response.user is not None


def build_reauthenticator(config) -> Optional[SupabaseReauth]:
    """Reauthenticator for the configured project, or None when not configured"""
    if not config.get('SUPABASE_URL'):
        return None
    try:
        return SupabaseReauth(
            config['SUPABASE_URL'],
            config.get('SUPABASE_ANON_KEY', ''),
            config.get('ADMIN_REAUTH_EMAIL', '')
        )
    except ValueError as e:
        logger.warning(f"Supabase re-authentication not configured: {e}")
        return None
