"""
Per-application wiring of the guard components
"""
import logging
import time

from flask import current_app

from extensions import init_redis
from services.audit_log import AuditLog
from services.block_registry import BlockRegistry
from services.classifier import HeuristicClassifier
from services.rate_limiter import RateLimiter
from services.reauth import build_reauthenticator
from services.session_manager import SessionManager
from services.csrf import CsrfTokens
from services.storage import DatabaseStore, FlaskSessionStore, MemoryStore, RedisStore
from services.submission_guard import SubmissionGuard

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'hobbyguard'


class GuardServices:
    """Components sharing one durable store and clock"""

    def __init__(self, config, durable_store, clock=time.time, reauthenticator=None):
        self.config = config
        self.durable_store = durable_store
        self.clock = clock
        self.reauthenticator = reauthenticator

        self.classifier = HeuristicClassifier()
        self.rate_limiter = RateLimiter(durable_store, clock)
        self.block_registry = BlockRegistry(durable_store, clock, config['BLOCK_DURATION_MS'])
        self.audit_log = AuditLog(durable_store, self.block_registry, clock, config['AUDIT_LOG_CAPACITY'])
        self.guard = SubmissionGuard(
            self.classifier,
            self.rate_limiter,
            self.block_registry,
            self.audit_log,
            rate_limits=config['RATE_LIMITS'],
            block_on_honeypot=config['BLOCK_ON_HONEYPOT'],
            block_on_bot_user_agent=config['BLOCK_ON_BOT_USER_AGENT'],
            block_duration_ms=config['BLOCK_DURATION_MS'],
        )

    def session_manager(self, session_store):
        return SessionManager.from_config(self.config, session_store, self.durable_store, self.reauthenticator)

    def clear_all(self):
        """Empty both the audit log and the block list"""
        logs_cleared = self.audit_log.clear()
        blocks_cleared = self.block_registry.clear_all()
        logger.info("Cleared all bot detection logs")
        return logs_cleared and blocks_cleared


def build_durable_store(app):
    backend = app.config['STORAGE_BACKEND']
    if backend == 'memory':
        return MemoryStore()
    if backend == 'redis':
        client = init_redis(app)
        if client is not None:
            return RedisStore(client, app.config['REDIS_KEY_PREFIX'])
    elif backend != 'database':
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    return DatabaseStore()


def init_guard_services(app, clock=time.time):
    config = dict(app.config)
    config['RATE_LIMITS'] = _rate_limits_from(app.config)
    services = GuardServices(
        config,
        build_durable_store(app),
        clock=clock,
        reauthenticator=build_reauthenticator(config)
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def _rate_limits_from(config):
    return {
        'post': (config['POST_RATE_LIMIT_KEY'], config['POST_MIN_INTERVAL_SECONDS']),
        'comment': (config['COMMENT_RATE_LIMIT_KEY'], config['COMMENT_MIN_INTERVAL_SECONDS']),
    }


def get_guard_services() -> GuardServices:
    """Guard services of the current application"""
    return current_app.extensions[EXTENSION_KEY]


def get_session_manager() -> SessionManager:
    """Session manager bound to the current request's session"""
    return get_guard_services().session_manager(FlaskSessionStore())


def get_csrf_tokens() -> CsrfTokens:
    """CSRF tokens kept in the current request's session"""
    return CsrfTokens(FlaskSessionStore())
