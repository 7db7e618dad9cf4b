"""
Error taxonomy for the guard core

Only StorageUnavailable is raised between components; every public operation
catches it and reports a failure code instead.
"""

VALIDATION_FAILURE = 'validation_failure'
RATE_LIMITED = 'rate_limited'
BLOCKED = 'blocked'
INVALID_CREDENTIAL = 'invalid_credential'
POLICY_VIOLATION = 'policy_violation'
STORAGE_UNAVAILABLE = 'storage_unavailable'
CSRF_FAILURE = 'csrf_failure'

# Status codes used by the HTTP layer for each failure kind
HTTP_STATUS = {
    VALIDATION_FAILURE: 400,
    RATE_LIMITED: 429,
    BLOCKED: 403,
    INVALID_CREDENTIAL: 401,
    POLICY_VIOLATION: 400,
    STORAGE_UNAVAILABLE: 503,
    CSRF_FAILURE: 403,
}


class GuardError(Exception):
    """Base class for guard core errors"""


class StorageUnavailable(GuardError):
    """The persisted store is inaccessible or holds corrupt data"""

    def __init__(self, key, message):
        super().__init__(f"{key}: {message}")
        self.key = key
