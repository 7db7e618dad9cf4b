import os


def _env_flag(name, default):
    return os.getenv(name, str(default)).lower() == 'true'


class Config:
    # Flask session signing (tab-scoped store)
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Database (durable store backend)
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///hobbyguard.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Durable store: database, redis or memory
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'database')

    # Redis Configuration
    REDIS_HOST = os.getenv('REDIS_HOST', 'localhost')
    REDIS_PORT = int(os.getenv('REDIS_PORT', 6379))
    REDIS_DB = int(os.getenv('REDIS_DB', 0))
    REDIS_KEY_PREFIX = os.getenv('REDIS_KEY_PREFIX', 'hobbyguard:')

    # Rate limiting per guarded action
    POST_RATE_LIMIT_KEY = 'lastPostSubmission'
    POST_MIN_INTERVAL_SECONDS = int(os.getenv('POST_MIN_INTERVAL_SECONDS', 30))
    COMMENT_RATE_LIMIT_KEY = 'lastCommentSubmission'
    COMMENT_MIN_INTERVAL_SECONDS = int(os.getenv('COMMENT_MIN_INTERVAL_SECONDS', 10))

    # Block registry
    BLOCK_DURATION_MS = int(os.getenv('BLOCK_DURATION_MS', 3600000))  # 1 hour
    BLOCK_ON_HONEYPOT = _env_flag('BLOCK_ON_HONEYPOT', True)
    BLOCK_ON_BOT_USER_AGENT = _env_flag('BLOCK_ON_BOT_USER_AGENT', True)

    # Audit log
    AUDIT_LOG_CAPACITY = int(os.getenv('AUDIT_LOG_CAPACITY', 100))

    # Roles
    ADMIN_USERNAME = 'admin'
    TEACHER_USERNAME = 'teacher'
    TEACHER_REQUIRES_PASSWORD = _env_flag('TEACHER_REQUIRES_PASSWORD', False)
    USERNAME_MIN_LENGTH = 2
    USERNAME_MAX_LENGTH = 50

    # Admin secret
    ADMIN_PASSWORD_LENGTH = 12
    MIN_ADMIN_PASSWORD_LENGTH = 8
    ADMIN_SECRET_HASHING = _env_flag('ADMIN_SECRET_HASHING', False)

    # Supabase re-authentication before admin password change (optional)
    SUPABASE_URL = os.getenv('SUPABASE_URL', '')
    SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY', '')
    ADMIN_REAUTH_EMAIL = os.getenv('ADMIN_REAUTH_EMAIL', '')

    # Guarded submissions must echo the session's CSRF token
    CSRF_PROTECTION = _env_flag('CSRF_PROTECTION', True)

    # Return a freshly generated role secret from POST /api/session/role-password;
    # otherwise it is only shown by init_database.py
    DISCLOSE_BOOTSTRAP_PASSWORD = _env_flag('DISCLOSE_BOOTSTRAP_PASSWORD', False)

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    DISCLOSE_BOOTSTRAP_PASSWORD = _env_flag('DISCLOSE_BOOTSTRAP_PASSWORD', True)


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SESSION_COOKIE_SECURE = True
