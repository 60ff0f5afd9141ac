# Overview: Audit log writer used from the post-commit phase.

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import AuditLog


def write_audit_log(
    *,
    action: str,
    entity_type: str,
    entity_id: int,
    actor_id: int | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Append one audit row. Does not commit: PostCommitEffects commits each
    effect on its own so one failing write cannot take the others down.
    """
    log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta=meta,
    )
    db.session.add(log)
    db.session.flush()
    return log


def list_audit_logs(*, entity_type: str | None = None, entity_id: int | None = None, limit: int = 100) -> list[AuditLog]:
    query = db.session.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.id.desc()).limit(limit).all()
