import json
import logging
import time
from datetime import datetime, timezone

from services.errors import StorageUnavailable
from services.fingerprint import basic_fingerprint

logger = logging.getLogger(__name__)

SUSPICIOUS_ACTIVITY_KEY = 'suspiciousActivityLogs'
DEFAULT_CAPACITY = 100


def iso_timestamp(epoch_seconds):
    """UTC ISO-8601 with millisecond precision and a Z suffix"""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class AuditLog:
    """
    Bounded log of suspicious events

    Entries are plain dicts: timestamp, fingerprint, userAgent and url of the
    client, merged with the caller's fields (caller keys win on collision).
    Once the log holds more than ``capacity`` entries the oldest are dropped.
    """

    def __init__(self, store, block_registry=None, clock=time.time, capacity=DEFAULT_CAPACITY):
        self.store = store
        self.block_registry = block_registry
        self.clock = clock
        self.capacity = capacity

    def _load(self):
        entries = self.store.read_json(SUSPICIOUS_ACTIVITY_KEY, [])
        if not all(isinstance(entry, dict) for entry in entries):
            raise StorageUnavailable(SUSPICIOUS_ACTIVITY_KEY, 'malformed log entry')
        return entries

    def record(self, event, client):
        """Append an entry for event observed from client; returns the entry"""
        entry = {
            'timestamp': iso_timestamp(self.clock()),
            'fingerprint': basic_fingerprint(client),
            'userAgent': client.user_agent,
            'url': client.url,
        }
        entry.update(event)

        try:
            entries = self._load()
            entries.append(entry)
            while len(entries) > self.capacity:
                entries.pop(0)
            self.store.write_json(SUSPICIOUS_ACTIVITY_KEY, entries)
        except StorageUnavailable as e:
            logger.error(f"Failed to write audit entry: {e}")
            return entry

        logger.warning(
            f"Suspicious activity logged: {entry.get('reason', 'unknown')} | "
            f"Fingerprint: {entry['fingerprint']} | Action: {entry.get('action', 'unknown')}"
        )
        return entry

    def list_all(self):
        """Entries oldest first"""
        try:
            return self._load()
        except StorageUnavailable as e:
            logger.warning(f"Audit log unreadable: {e}")
            return []

    def clear(self):
        try:
            self.store.remove(SUSPICIOUS_ACTIVITY_KEY)
            return True
        except StorageUnavailable as e:
            logger.error(f"Failed to clear audit log: {e}")
            return False

    def export_json(self):
        """Pretty-printed document of the log and the active block list for offline review"""
        blocked = self.block_registry.list_active() if self.block_registry else []
        data = {
            'exportDate': iso_timestamp(self.clock()),
            'suspiciousActivity': self.list_all(),
            'blockedFingerprints': [entry.to_dict() for entry in blocked]
        }
        return json.dumps(data, indent=2)
