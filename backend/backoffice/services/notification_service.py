# Overview: Notification fan-out to admin inboxes.

from __future__ import annotations

from ..extensions import db
from ..models import Notification, User
from ..models.auth import ROLE_ADMIN


def notify_admins(*, type: str, title: str, body: str) -> int:
    """One Notification per active admin. Returns how many were queued."""
    admins = db.session.query(User).filter_by(role=ROLE_ADMIN, is_active=True).all()
    db.session.add_all(
        [Notification(user_id=admin.id, type=type, title=title, body=body) for admin in admins]
    )
    db.session.flush()
    return len(admins)


def list_notifications(user_id: int, limit: int = 50) -> list[Notification]:
    return (
        db.session.query(Notification)
        .filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def mark_read(notification_id: int, user_id: int) -> int:
    """Only the owner can mark its notification; returns rows updated."""
    updated = (
        db.session.query(Notification)
        .filter_by(id=notification_id, user_id=user_id)
        .update({"is_read": True}, synchronize_session=False)
    )
    db.session.commit()
    return updated
