# Overview: Reseller lifecycle; account creation, profile edits, the profile view and the cascading delete.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    ChatConversationMember,
    ChatMessage,
    Consignment,
    ConsignmentMovement,
    DebtLedgerEntry,
    Device,
    Notification,
    Payment,
    Reseller,
    SessionToken,
    StockRequest,
    User,
)
from ..models.auth import ROLE_RESELLER
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service, auth_service, ledger_service
from .device_service import STATE_AVAILABLE
from .post_commit import PostCommitEffects

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"segment", "company_name", "city", "address", "birthday", "latitude", "longitude"},
)


def _check_coordinates(patch: dict) -> None:
    latitude = patch.get("latitude")
    longitude = patch.get("longitude")
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError("latitude debe estar entre -90 y 90")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError("longitude debe estar entre -180 y 180")


def get_reseller(reseller_id: int) -> Reseller:
    reseller = db.session.get(Reseller, reseller_id)
    if not reseller:
        raise NotFoundError("Revendedor no encontrado")
    return reseller


def list_resellers():
    return db.session.query(Reseller).join(User, User.id == Reseller.user_id).order_by(User.name, Reseller.id)


def create_reseller(*, name: str, email: str, password: str, actor_id: int | None = None, **profile) -> Reseller:
    """
    Create the login account and the reseller row together.

    Raises:
        ValidationError: bad email, short password, bad profile fields
        ConflictError: email already registered
    """
    patch = validate_payload(model=Reseller, payload=profile, policy=PROFILE_POLICY, partial=True)
    _check_coordinates(patch)
    user = auth_service.build_user(email=email, name=name, password=password, role=ROLE_RESELLER)

    try:
        db.session.add(user)
        db.session.flush()
        reseller = Reseller(user_id=user.id, **patch)
        db.session.add(reseller)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Reseller %s created for %s", reseller.id, user.email)
    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="reseller.created",
        entity_type="reseller",
        entity_id=reseller.id,
        meta={"email": user.email},
    )
    effects.run()
    return reseller


def update_reseller_profile(reseller_id: int, data: dict) -> Reseller:
    patch = validate_payload(model=Reseller, payload=data, policy=PROFILE_POLICY, partial=True)
    _check_coordinates(patch)
    reseller = get_reseller(reseller_id)
    for field_name, value in patch.items():
        setattr(reseller, field_name, value)
    db.session.commit()
    return reseller


def get_reseller_profile(reseller_id: int, limit: int = 20) -> dict:
    """Reseller with its recent activity and current balance."""
    reseller = get_reseller(reseller_id)
    consignments = (
        db.session.query(Consignment)
        .filter_by(reseller_id=reseller.id)
        .order_by(Consignment.assigned_at.desc(), Consignment.id.desc())
        .limit(limit)
        .all()
    )
    payments = (
        db.session.query(Payment)
        .filter_by(reseller_id=reseller.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(limit)
        .all()
    )
    entries = ledger_service.list_debt_entries(reseller.id, limit=limit)
    return {
        "reseller": reseller.to_dict(),
        "balance_cents": ledger_service.get_debt_balance_cents(reseller.id),
        "consignments": [c.to_dict(include_movements=False) for c in consignments],
        "payments": [p.to_dict() for p in payments],
        "debt_entries": [e.to_dict() for e in entries],
    }


def delete_reseller(reseller_id: int, *, actor_id: int | None = None) -> None:
    """
    Remove a reseller and everything hanging off it in one transaction.
    Its devices go back to the office as available and unassigned.
    """
    reseller = get_reseller(reseller_id)
    user = reseller.user
    user_id = reseller.user_id
    email = user.email if user else None

    try:
        db.session.query(Device).filter(Device.reseller_id == reseller_id).update(
            {"reseller_id": None, "state": STATE_AVAILABLE, "version_id": Device.version_id + 1},
            synchronize_session=False,
        )
        consignment_ids = [
            cid for (cid,) in db.session.query(Consignment.id).filter(Consignment.reseller_id == reseller_id)
        ]
        if consignment_ids:
            db.session.query(ConsignmentMovement).filter(
                ConsignmentMovement.consignment_id.in_(consignment_ids)
            ).delete(synchronize_session=False)
            db.session.query(Consignment).filter(Consignment.id.in_(consignment_ids)).delete(synchronize_session=False)
        db.session.query(DebtLedgerEntry).filter_by(reseller_id=reseller_id).delete(synchronize_session=False)
        db.session.query(Payment).filter_by(reseller_id=reseller_id).delete(synchronize_session=False)
        db.session.query(StockRequest).filter_by(reseller_id=reseller_id).delete(synchronize_session=False)

        db.session.query(SessionToken).filter_by(user_id=user_id).delete(synchronize_session=False)
        db.session.query(Notification).filter_by(user_id=user_id).delete(synchronize_session=False)
        db.session.query(ChatConversationMember).filter_by(user_id=user_id).delete(synchronize_session=False)
        db.session.query(ChatMessage).filter_by(sender_id=user_id).update({"sender_id": None}, synchronize_session=False)

        db.session.query(Reseller).filter_by(id=reseller_id).delete(synchronize_session=False)
        db.session.query(User).filter_by(id=user_id).delete(synchronize_session=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    # Bulk deletes bypass the identity map
    db.session.expunge(reseller)
    if user is not None:
        db.session.expunge(user)

    current_app.logger.info("Reseller %s deleted by user %s", reseller_id, actor_id)
    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="reseller.deleted",
        entity_type="reseller",
        entity_id=reseller_id,
        meta={"email": email},
    )
    effects.run()
