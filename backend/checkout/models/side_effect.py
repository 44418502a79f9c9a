from datetime import datetime

from checkout.extensions import db


class SideEffect(db.Model):
    """One row per webhook side effect (stock decrement line, invoice).

    `key` makes redelivered events skip work already applied; failed rows
    double as the dead-letter list for manual follow-up.
    """

    __tablename__ = "side_effects"

    id = db.Column(db.Integer, primary_key=True)

    key = db.Column(db.String(160), nullable=False, unique=True)
    kind = db.Column(db.String(32), nullable=False)  # stock | invoice
    payment_id = db.Column(db.String(64), nullable=True, index=True)
    order_id = db.Column(db.String(64), nullable=True)
    event_id = db.Column(db.String(128), nullable=True)

    # applied | failed
    status = db.Column(db.String(16), nullable=False, default="applied", index=True)
    attempt_count = db.Column(db.Integer, nullable=False, default=1)
    last_error = db.Column(db.String(240), nullable=True)
    meta = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "key": self.key,
            "kind": self.kind,
            "payment_id": self.payment_id or "",
            "order_id": self.order_id or "",
            "event_id": self.event_id or "",
            "status": self.status,
            "attempt_count": int(self.attempt_count or 0),
            "last_error": self.last_error or "",
            "meta": self.meta or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
