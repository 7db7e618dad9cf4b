from extensions import db
from datetime import datetime


class StoreEntry(db.Model):
    """One key of the durable key-value store"""
    __tablename__ = 'store_entries'

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, key, value):
        self.key = key
        self.value = value

    def to_dict(self):
        return {
            'key': self.key,
            'value': self.value,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
