"""
Pytest configuration and fixtures
"""
import pytest
from app import create_app
from config import Config
from services.audit_log import AuditLog
from services.block_registry import BlockRegistry
from services.classifier import HeuristicClassifier
from services.fingerprint import ClientEnvironment
from services.rate_limiter import RateLimiter
from services.session_manager import SessionManager
from services.storage import KeyValueStore, MemoryStore
from services.errors import StorageUnavailable
from services.submission_guard import SubmissionGuard

BROWSER_UA = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

START_TIME = 1700000000.0  # 2023-11-14T22:13:20Z


class TestConfig(Config):
    """Test configuration"""
    TESTING = True
    SECRET_KEY = 'test-secret-key-for-testing-only'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    STORAGE_BACKEND = 'memory'
    POST_MIN_INTERVAL_SECONDS = 30
    COMMENT_MIN_INTERVAL_SECONDS = 10
    SUPABASE_URL = ''
    LOG_LEVEL = 'WARNING'
    DEBUG = False
    # Route tests opt in to these per test
    CSRF_PROTECTION = False
    DISCLOSE_BOOTSTRAP_PASSWORD = True


class DatabaseTestConfig(TestConfig):
    STORAGE_BACKEND = 'database'


class FakeClock:
    """Controllable replacement for time.time"""

    def __init__(self, start=START_TIME):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class BrokenStore(KeyValueStore):
    """Store whose backend is always down"""

    def get(self, key):
        raise StorageUnavailable(key, 'backend down')

    def set(self, key, value):
        raise StorageUnavailable(key, 'backend down')

    def remove(self, key):
        raise StorageUnavailable(key, 'backend down')


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def broken_store():
    return BrokenStore()


@pytest.fixture
def browser():
    """A typical desktop browser"""
    return ClientEnvironment(
        user_agent=BROWSER_UA,
        language='en-US',
        timezone_offset=-60,
        screen_width=1920,
        screen_height=1080,
        hardware_concurrency=8,
        url='https://hobbyhub.example/create'
    )


@pytest.fixture
def laptop():
    """A second, different device"""
    return ClientEnvironment(
        user_agent=BROWSER_UA,
        language='de-DE',
        timezone_offset=-120,
        screen_width=1440,
        screen_height=900,
        hardware_concurrency=4,
        url='https://hobbyhub.example/create'
    )


@pytest.fixture
def block_registry(store, clock):
    return BlockRegistry(store, clock)


@pytest.fixture
def audit_log(store, block_registry, clock):
    return AuditLog(store, block_registry, clock)


@pytest.fixture
def rate_limiter(store, clock):
    return RateLimiter(store, clock)


@pytest.fixture
def guard(rate_limiter, block_registry, audit_log):
    return SubmissionGuard(
        HeuristicClassifier(),
        rate_limiter,
        block_registry,
        audit_log,
        rate_limits={
            'post': ('lastPostSubmission', 30),
            'comment': ('lastCommentSubmission', 10),
        },
        block_duration_ms=3600000
    )


@pytest.fixture
def session_store():
    """Stands in for one browser tab"""
    return MemoryStore()


@pytest.fixture
def session_manager(session_store, store):
    return SessionManager(session_store, store)


@pytest.fixture
def admin_password(session_manager):
    return session_manager.ensure_admin_password().password


@pytest.fixture
def app(clock):
    """Create application for testing"""
    app = create_app(TestConfig, clock=clock)
    yield app


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()
