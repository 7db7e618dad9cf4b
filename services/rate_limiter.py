import logging
import math
import time

from services.errors import RATE_LIMITED, StorageUnavailable

logger = logging.getLogger(__name__)


class RateLimitResult:
    def __init__(self, allowed, seconds_remaining=0):
        self.allowed = allowed
        self.seconds_remaining = seconds_remaining

    @property
    def failure(self):
        return None if self.allowed else RATE_LIMITED

    def to_dict(self):
        data = {'allowed': self.allowed}
        if not self.allowed:
            data['secondsRemaining'] = self.seconds_remaining
        return data


class RateLimiter:
    """
    Minimum interval between submissions of one action

    The last successful submission per key is persisted as epoch milliseconds.
    check() never writes: callers must call record() once the guarded action
    has actually succeeded.
    """

    def __init__(self, store, clock=time.time):
        self.store = store
        self.clock = clock

    def _now_ms(self):
        return int(self.clock() * 1000)

    def _last_submission_ms(self, key):
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise StorageUnavailable(key, f"invalid timestamp {raw!r}")

    def check(self, key, min_interval_seconds):
        try:
            last_submit = self._last_submission_ms(key)
        except StorageUnavailable as e:
            logger.warning(f"Rate limit state unreadable, allowing: {e}")
            return RateLimitResult(True)

        if last_submit is None:
            return RateLimitResult(True)

        elapsed = (self._now_ms() - last_submit) / 1000
        if elapsed < min_interval_seconds:
            return RateLimitResult(False, math.ceil(min_interval_seconds - elapsed))

        return RateLimitResult(True)

    def record(self, key):
        """Persist now as the last submission instant; returns False if the store failed"""
        try:
            self.store.set(key, str(self._now_ms()))
            return True
        except StorageUnavailable as e:
            logger.error(f"Failed to record submission: {e}")
            return False
