"""
Key-value stores backing the guard core

Two lifetimes exist: a durable store shared by every client (block registry,
audit log, rate-limit timestamps, admin secret) and a tab-scoped store holding
the active username. Both sit behind the same get/set/remove interface.
"""
import json
import logging

from flask import session
from redis import RedisError
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.store_entry import StoreEntry
from services.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String key -> string value store"""

    def get(self, key):
        raise NotImplementedError

    def set(self, key, value):
        raise NotImplementedError

    def remove(self, key):
        raise NotImplementedError

    def read_json(self, key, default):
        """
        Decode the JSON document stored under key

        Returns default when the key is absent. Raises StorageUnavailable when
        the stored text is not JSON or not the same type as default.
        """
        raw = self.get(key)
        if raw is None:
            return default
        try:
            value = json.loads(raw)
        except ValueError as e:
            raise StorageUnavailable(key, f"corrupt JSON ({e})")
        if default is not None and not isinstance(value, type(default)):
            raise StorageUnavailable(key, f"expected {type(default).__name__}, found {type(value).__name__}")
        return value

    def write_json(self, key, value):
        self.set(key, json.dumps(value))


class MemoryStore(KeyValueStore):
    """Dict-backed store for tests and single-process use"""

    def __init__(self, initial=None):
        self._data = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = str(value)

    def remove(self, key):
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class DatabaseStore(KeyValueStore):
    """Durable store kept in the store_entries table"""

    def get(self, key):
        try:
            entry = db.session.get(StoreEntry, key)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(key, str(e))
        return entry.value if entry else None

    def set(self, key, value):
        try:
            entry = db.session.get(StoreEntry, key)
            if entry:
                entry.value = str(value)
            else:
                db.session.add(StoreEntry(key=key, value=str(value)))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(key, str(e))

    def remove(self, key):
        try:
            entry = db.session.get(StoreEntry, key)
            if entry:
                db.session.delete(entry)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable(key, str(e))


class RedisStore(KeyValueStore):
    """Durable store kept in Redis under a key prefix"""

    def __init__(self, client, prefix='hobbyguard:'):
        self.client = client
        self.prefix = prefix

    def _key(self, key):
        return f"{self.prefix}{key}"

    def get(self, key):
        try:
            return self.client.get(self._key(key))
        except RedisError as e:
            raise StorageUnavailable(key, str(e))

    def set(self, key, value):
        try:
            self.client.set(self._key(key), str(value))
        except RedisError as e:
            raise StorageUnavailable(key, str(e))

    def remove(self, key):
        try:
            self.client.delete(self._key(key))
        except RedisError as e:
            raise StorageUnavailable(key, str(e))


class FlaskSessionStore(KeyValueStore):
    """Tab-scoped store backed by the signed Flask session cookie"""

    def get(self, key):
        return session.get(key)

    def set(self, key, value):
        session[key] = str(value)

    def remove(self, key):
        session.pop(key, None)
