"""
Session identity and role-based access

The tab-scoped store holds one ``currentUser`` username. The role is derived
from that name once, when the session is read, by case-insensitive match
against the reserved admin and teacher names. Admin (and, when configured,
teacher) login is gated by a secret kept in the durable store.
"""
import enum
import logging
import random
import re
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

from services.errors import (
    INVALID_CREDENTIAL,
    POLICY_VIOLATION,
    STORAGE_UNAVAILABLE,
    VALIDATION_FAILURE,
    StorageUnavailable,
)

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = 'currentUser'
ADMIN_PASSWORD_KEY = 'adminPassword'
TEACHER_PASSWORD_KEY = 'teacherPassword'

PASSWORD_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789!@#$%'
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')


def normalize_username(username):
    if not isinstance(username, str):
        return ''
    return username.strip().lower()


def generate_password(length=12):
    """Random password from an alphabet without look-alike characters"""
    try:
        return ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
    except NotImplementedError:
        # No OS randomness source
        logger.warning("System random source unavailable, using pseudo-random password generator")
        return ''.join(random.choice(PASSWORD_ALPHABET) for _ in range(length))


class Role(enum.Enum):
    ADMIN = 'admin'
    TEACHER = 'teacher'
    PLAIN = 'user'

    @classmethod
    def for_username(cls, username, admin_username='admin', teacher_username='teacher'):
        normalized = normalize_username(username)
        if normalized == admin_username:
            return cls.ADMIN
        if normalized == teacher_username:
            return cls.TEACHER
        return cls.PLAIN


class SessionUser:
    """The active user of a session together with their derived role"""

    def __init__(self, username, role):
        self.username = username
        self.role = role

    def to_dict(self):
        return {'username': self.username, 'role': self.role.value}


class LoginResult:
    def __init__(self, ok, user=None, failure=None, error=None):
        self.ok = ok
        self.user = user
        self.failure = failure
        self.error = error

    def to_dict(self):
        if self.ok:
            return {'ok': True, 'user': self.user.to_dict()}
        return {'ok': False, 'failure': self.failure, 'error': self.error}


class PasswordChangeResult:
    def __init__(self, ok, failure=None, error=None):
        self.ok = ok
        self.failure = failure
        self.error = error

    def to_dict(self):
        if self.ok:
            return {'ok': True}
        return {'ok': False, 'failure': self.failure, 'error': self.error}


class PasswordBootstrap:
    """Outcome of ensure_*_password; password is only set the one time it is created"""

    def __init__(self, created, password=None, failure=None):
        self.created = created
        self.password = password
        self.failure = failure

    def to_dict(self):
        data = {'created': self.created}
        if self.created:
            data['password'] = self.password
        if self.failure:
            data['failure'] = self.failure
        return data


class RoleSecret:
    """A single persisted secret gating one reserved role"""

    def __init__(self, store, key, hashed=False, length=12):
        self.store = store
        self.key = key
        self.hashed = hashed
        self.length = length

    def _encode(self, password):
        return generate_password_hash(password) if self.hashed else password

    def exists(self):
        return bool(self.store.get(self.key))

    def ensure(self):
        if self.exists():
            return PasswordBootstrap(created=False)
        password = generate_password(self.length)
        self.store.set(self.key, self._encode(password))
        logger.info(f"Generated initial secret for {self.key}")
        return PasswordBootstrap(created=True, password=password)

    def verify(self, candidate):
        stored = self.store.get(self.key)
        if not stored or not isinstance(candidate, str):
            return False
        if self.hashed:
            return check_password_hash(stored, candidate)
        return secrets.compare_digest(candidate.encode('utf-8'), stored.encode('utf-8'))

    def replace(self, password):
        self.store.set(self.key, self._encode(password))


class SessionManager:
    def __init__(self, session_store, durable_store, admin_username='admin',
                 teacher_username='teacher', teacher_requires_password=False,
                 password_length=12, min_password_length=8, hash_secrets=False,
                 username_min_length=2, username_max_length=50, reauthenticator=None):
        self.session_store = session_store
        self.admin_username = admin_username
        self.teacher_username = teacher_username
        self.teacher_requires_password = teacher_requires_password
        self.min_password_length = min_password_length
        self.username_min_length = username_min_length
        self.username_max_length = username_max_length
        self.reauthenticator = reauthenticator
        self.admin_secret = RoleSecret(durable_store, ADMIN_PASSWORD_KEY, hash_secrets, password_length)
        self.teacher_secret = RoleSecret(durable_store, TEACHER_PASSWORD_KEY, hash_secrets, password_length)

    @classmethod
    def from_config(cls, config, session_store, durable_store, reauthenticator=None):
        return cls(
            session_store,
            durable_store,
            admin_username=config['ADMIN_USERNAME'],
            teacher_username=config['TEACHER_USERNAME'],
            teacher_requires_password=config['TEACHER_REQUIRES_PASSWORD'],
            password_length=config['ADMIN_PASSWORD_LENGTH'],
            min_password_length=config['MIN_ADMIN_PASSWORD_LENGTH'],
            hash_secrets=config['ADMIN_SECRET_HASHING'],
            username_min_length=config['USERNAME_MIN_LENGTH'],
            username_max_length=config['USERNAME_MAX_LENGTH'],
            reauthenticator=reauthenticator,
        )

    def role_for(self, username):
        return Role.for_username(username, self.admin_username, self.teacher_username)

    def _secret_for(self, role):
        if role is Role.ADMIN:
            return self.admin_secret
        if role is Role.TEACHER and self.teacher_requires_password:
            return self.teacher_secret
        return None

    def _validate_username(self, username):
        if not username:
            return 'Please enter a username'
        if len(username) < self.username_min_length:
            return f'Username must be at least {self.username_min_length} characters'
        if len(username) > self.username_max_length:
            return f'Username must be less than {self.username_max_length} characters'
        if not USERNAME_PATTERN.match(username):
            return 'Username can only contain letters, numbers, underscore, and dash'
        return None

    # Session state

    def login(self, username, password=None):
        """Make username the active user, verifying the role secret for gated roles"""
        if username is not None and not isinstance(username, str):
            return LoginResult(False, failure=VALIDATION_FAILURE, error='Username must be text')
        username = (username or '').strip()
        error = self._validate_username(username)
        if error:
            return LoginResult(False, failure=VALIDATION_FAILURE, error=error)

        role = self.role_for(username)
        secret = self._secret_for(role)
        if secret is not None:
            if password is not None and not isinstance(password, str):
                return LoginResult(False, failure=INVALID_CREDENTIAL, error=f'Invalid {role.value} password')
            candidate = (password or '').strip()
            if not candidate:
                return LoginResult(False, failure=INVALID_CREDENTIAL, error=f'{role.value.title()} password is required')
            try:
                verified = secret.verify(candidate)
            except StorageUnavailable as e:
                logger.error(f"Cannot verify {role.value} password: {e}")
                return LoginResult(False, failure=STORAGE_UNAVAILABLE, error='Password store unavailable')
            if not verified:
                logger.warning(f"Failed {role.value} login attempt")
                return LoginResult(False, failure=INVALID_CREDENTIAL, error=f'Invalid {role.value} password')

        self.session_store.set(CURRENT_USER_KEY, username)
        logger.info(f"User logged in: {username} ({role.value})")
        return LoginResult(True, user=SessionUser(username, role))

    def logout(self):
        self.session_store.remove(CURRENT_USER_KEY)

    def get_current_user(self):
        """SessionUser for the active username, or None when anonymous"""
        username = self.session_store.get(CURRENT_USER_KEY)
        if not username:
            return None
        return SessionUser(username, self.role_for(username))

    def is_logged_in(self):
        return self.get_current_user() is not None

    def _current_role(self):
        user = self.get_current_user()
        return user.role if user else None

    def is_admin(self):
        return self._current_role() is Role.ADMIN

    def is_teacher(self):
        return self._current_role() is Role.TEACHER

    def is_admin_viewer(self):
        return self._current_role() in (Role.ADMIN, Role.TEACHER)

    # Permissions

    def can_edit(self, post_author):
        """Admins edit anything, plain users only their own posts, teachers nothing"""
        user = self.get_current_user()
        if user is None or user.role is Role.TEACHER:
            return False
        if user.role is Role.ADMIN:
            return True
        return bool(post_author) and user.username.lower() == post_author.lower()

    def can_delete(self, post_author):
        return self.can_edit(post_author)

    # Admin secret

    def has_admin_password(self):
        try:
            return self.admin_secret.exists()
        except StorageUnavailable as e:
            logger.warning(f"Password store unreadable: {e}")
            return False

    def ensure_admin_password(self):
        return self._ensure(self.admin_secret)

    def ensure_teacher_password(self):
        if not self.teacher_requires_password:
            return PasswordBootstrap(created=False)
        return self._ensure(self.teacher_secret)

    def _ensure(self, secret):
        try:
            return secret.ensure()
        except StorageUnavailable as e:
            logger.error(f"Cannot create {secret.key}: {e}")
            return PasswordBootstrap(created=False, failure=STORAGE_UNAVAILABLE)

    def verify_admin_password(self, candidate):
        try:
            return self.admin_secret.verify(candidate)
        except StorageUnavailable as e:
            logger.error(f"Cannot verify admin password: {e}")
            return False

    def change_admin_password(self, current_password, new_password):
        """Replace the admin secret after verifying the current one"""
        if not self.verify_admin_password(current_password):
            return PasswordChangeResult(False, INVALID_CREDENTIAL, 'Current password is incorrect.')

        new_password = new_password.strip() if isinstance(new_password, str) else ''
        if len(new_password) < self.min_password_length:
            return PasswordChangeResult(
                False, POLICY_VIOLATION,
                f'New password must be at least {self.min_password_length} characters.'
            )

        if self.reauthenticator is not None and not self.reauthenticator(current_password):
            return PasswordChangeResult(False, INVALID_CREDENTIAL, 'Current password is incorrect.')

        try:
            self.admin_secret.replace(new_password)
        except StorageUnavailable as e:
            logger.error(f"Cannot store admin password: {e}")
            return PasswordChangeResult(False, STORAGE_UNAVAILABLE, 'Error updating password. Please try again.')

        logger.info("Admin password changed")
        return PasswordChangeResult(True)
