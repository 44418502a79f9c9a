from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from checkout.extensions import db
from checkout.models import AuditLog, SideEffect

log = logging.getLogger(__name__)


def effect_key(kind: str, payment_id: str, *parts) -> str:
    return ":".join([kind, str(payment_id), *[str(p) for p in parts]])[:160]


def has_applied(key: str) -> bool:
    """True when the step is recorded as applied.

    An unreadable ledger also answers True: the step is skipped rather than
    risk applying it twice.
    """
    try:
        row = SideEffect.query.filter_by(key=key).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.error("Side-effect ledger unavailable, skipping %s: %s", key, e)
        return True
    return bool(row and row.status == "applied")


def _upsert(key: str, *, kind: str, status: str, payment_id=None, order_id=None, event_id=None, error: str = "", meta: Any = None) -> SideEffect | None:
    row = SideEffect.query.filter_by(key=key).first()
    if row is None:
        row = SideEffect(key=key, kind=kind, attempt_count=0)
    row.status = status
    row.payment_id = str(payment_id) if payment_id is not None else row.payment_id
    row.order_id = str(order_id) if order_id is not None else row.order_id
    row.event_id = event_id or row.event_id
    row.attempt_count = int(row.attempt_count or 0) + 1
    row.last_error = (error or "")[:240] or None
    if meta is not None:
        row.meta = json.dumps(meta, default=str)
    row.updated_at = datetime.utcnow()
    try:
        db.session.add(row)
        db.session.commit()
    except IntegrityError:
        # A concurrent delivery inserted the same key first.
        db.session.rollback()
        row = SideEffect.query.filter_by(key=key).first()
    return row


def _record(key: str, **kwargs) -> SideEffect | None:
    try:
        return _upsert(key, **kwargs)
    except SQLAlchemyError as e:
        db.session.rollback()
        log.error("Side-effect ledger write failed for %s (%s): %s", key, kwargs.get("status"), e)
        return None


def record_applied(key: str, **kwargs) -> SideEffect | None:
    return _record(key, status="applied", **kwargs)


def record_failure(key: str, error: str, **kwargs) -> SideEffect | None:
    """Dead-letter a best-effort step; a later redelivery may retry it."""
    log.error("Side effect %s failed: %s", key, error)
    if has_applied(key):
        return None
    return _record(key, status="failed", error=error, **kwargs)


def list_side_effects(status: str | None = None, limit: int = 100) -> list:
    q = SideEffect.query
    if status:
        q = q.filter_by(status=status)
    rows = q.order_by(SideEffect.created_at.desc()).limit(int(limit)).all()
    return [r.to_dict() for r in rows]


def audit(action: str, target_type: str, target_id=None, meta: Any = None) -> None:
    try:
        db.session.add(AuditLog(
            action=action,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
            meta=json.dumps(meta or {}, default=str),
        ))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.warning("audit log write failed for %s: %s", action, e)
