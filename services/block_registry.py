"""
Time-expiring block list of device fingerprints

Eviction is lazy: expired entries are dropped when is_blocked() reads the
list, so every read path that decides access must go through is_blocked().
The persisted list is rewritten on each sweep without locking; concurrent
writers can lose each other's entries (last writer wins).
"""
import logging
import time

from services.errors import StorageUnavailable

logger = logging.getLogger(__name__)

BLOCKED_FINGERPRINTS_KEY = 'blockedFingerprints'
DEFAULT_BLOCK_DURATION_MS = 3600000
DEFAULT_BLOCK_REASON = 'Bot detection'


class BlockEntry:
    """Immutable record of one block"""

    __slots__ = ('fingerprint', 'blocked_at', 'expires_at', 'reason')

    def __init__(self, fingerprint, blocked_at, expires_at, reason=DEFAULT_BLOCK_REASON):
        object.__setattr__(self, 'fingerprint', fingerprint)
        object.__setattr__(self, 'blocked_at', blocked_at)
        object.__setattr__(self, 'expires_at', expires_at)
        object.__setattr__(self, 'reason', reason)

    def __setattr__(self, name, value):
        raise AttributeError('BlockEntry is immutable')

    def __eq__(self, other):
        if not isinstance(other, BlockEntry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"BlockEntry({self.fingerprint!r}, expires_at={self.expires_at})"

    def is_active(self, now_ms):
        return self.expires_at > now_ms

    @classmethod
    def from_dict(cls, data):
        return cls(
            fingerprint=data['fingerprint'],
            blocked_at=int(data['blockedAt']),
            expires_at=int(data['expiresAt']),
            reason=data.get('reason', DEFAULT_BLOCK_REASON),
        )

    def to_dict(self):
        return {
            'fingerprint': self.fingerprint,
            'blockedAt': self.blocked_at,
            'expiresAt': self.expires_at,
            'reason': self.reason
        }


class BlockRegistry:
    def __init__(self, store, clock=time.time, default_duration_ms=DEFAULT_BLOCK_DURATION_MS):
        self.store = store
        self.clock = clock
        self.default_duration_ms = default_duration_ms

    def _now_ms(self):
        return int(self.clock() * 1000)

    def _load(self):
        raw_entries = self.store.read_json(BLOCKED_FINGERPRINTS_KEY, [])
        try:
            return [BlockEntry.from_dict(item) for item in raw_entries]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageUnavailable(BLOCKED_FINGERPRINTS_KEY, f"malformed block entry ({e})")

    def _save(self, entries):
        self.store.write_json(BLOCKED_FINGERPRINTS_KEY, [entry.to_dict() for entry in entries])

    def block(self, fingerprint, duration_ms=None, reason=DEFAULT_BLOCK_REASON):
        """
        Add a block entry expiring duration_ms from now

        Returns the new entry, or None when the store could not be updated.
        """
        if duration_ms is None:
            duration_ms = self.default_duration_ms
        if duration_ms <= 0:
            raise ValueError('duration_ms must be positive')

        now = self._now_ms()
        entry = BlockEntry(fingerprint, blocked_at=now, expires_at=now + int(duration_ms), reason=reason)
        try:
            entries = self._load()
            entries.append(entry)
            self._save(entries)
        except StorageUnavailable as e:
            logger.error(f"Failed to block fingerprint {fingerprint}: {e}")
            return None

        logger.warning(f"Fingerprint blocked: {fingerprint} ({reason})")
        return entry

    def is_blocked(self, fingerprint):
        """Sweep expired entries, persist the pruned list, then test membership"""
        try:
            entries = self._load()
            now = self._now_ms()
            active = [entry for entry in entries if entry.is_active(now)]
            self._save(active)
        except StorageUnavailable as e:
            logger.warning(f"Block list unreadable, treating {fingerprint} as not blocked: {e}")
            return False
        return any(entry.fingerprint == fingerprint for entry in active)

    def list_active(self):
        """Unexpired entries, without writing to the store"""
        try:
            entries = self._load()
        except StorageUnavailable as e:
            logger.warning(f"Block list unreadable: {e}")
            return []
        now = self._now_ms()
        return [entry for entry in entries if entry.is_active(now)]

    def clear_all(self):
        try:
            self.store.remove(BLOCKED_FINGERPRINTS_KEY)
            return True
        except StorageUnavailable as e:
            logger.error(f"Failed to clear block list: {e}")
            return False
