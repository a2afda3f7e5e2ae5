from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z


class Setting(db.Model):
    """
    Key-value settings for the single location.

    Values are JSON-encoded text so structured settings (the exchange rate
    table) fit the same row shape as scalars.
    """
    __tablename__ = "settings"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=True)

    updated_by = db.Column(db.String(128), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "key": self.key,
            "value": self.value,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
