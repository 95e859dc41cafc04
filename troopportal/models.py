from datetime import datetime, timezone

from database import db


def _utcnow():
    return datetime.now(timezone.utc)


class StorageEntry(db.Model):
    """One key-value slot. The whole portal state is a JSON document in `value`."""
    __tablename__ = 'storage_entries'

    key = db.Column(db.String(120), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    # bumped on every write; an UPDATE against an older version matches no row
    version = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False,
                           default=_utcnow, onupdate=_utcnow)

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f'<StorageEntry {self.key} v{self.version}>'
