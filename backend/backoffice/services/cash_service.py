# Overview: Cash boxes and their append-only movement log.

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func

from ..errors import NotFoundError
from ..extensions import db
from ..models import CashBox, CashMovement
from ..models.cash import MOVEMENT_CREDIT, VALID_BOX_CURRENCIES, VALID_BOX_TYPES, VALID_MOVEMENT_TYPES
from ..validation import require_cents, require_choice, require_text

REFERENCE_PAYMENT = "payment"
REFERENCE_MANUAL = "manual"


def create_cash_box(*, name: str, currency: str = "USD", type: str = "general") -> CashBox:
    name = require_text(name, "name", max_length=128)
    require_choice(currency, VALID_BOX_CURRENCIES, "currency")
    require_choice(type, VALID_BOX_TYPES, "type")

    box = CashBox(name=name, currency=currency, type=type)
    db.session.add(box)
    db.session.commit()
    current_app.logger.info("Cash box %s (%s) created", box.id, box.currency)
    return box


def require_cash_box(cash_box_id: int) -> CashBox:
    box = db.session.get(CashBox, cash_box_id)
    if not box:
        raise NotFoundError("Caja no encontrada")
    return box


def add_cash_movement(
    *,
    cash_box_id: int,
    type: str,
    amount_cents: int,
    description: str,
    currency: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> CashMovement:
    """
    Append one movement. Flush only: the caller owns the transaction, so a
    payment confirmation writes its credit and its ledger entry atomically.
    """
    require_choice(type, VALID_MOVEMENT_TYPES, "type")
    require_cents(amount_cents, "amount_cents")
    description = require_text(description, "description", max_length=255)
    box = require_cash_box(cash_box_id)

    movement = CashMovement(
        cash_box_id=cash_box_id,
        type=type,
        amount_cents=amount_cents,
        currency=currency or box.currency,
        description=description,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def record_manual_movement(*, cash_box_id: int, type: str, amount_cents: int, description: str) -> CashMovement:
    """Admin-entered movement, in the box's own currency."""
    box = require_cash_box(cash_box_id)
    try:
        movement = add_cash_movement(
            cash_box_id=box.id,
            type=type,
            amount_cents=amount_cents,
            currency=box.currency,
            description=description,
            reference_type=REFERENCE_MANUAL,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return movement


def get_cash_box_balance_cents(cash_box_id: int) -> int:
    signed = case((CashMovement.type == MOVEMENT_CREDIT, CashMovement.amount_cents), else_=-CashMovement.amount_cents)
    total = (
        db.session.query(func.coalesce(func.sum(signed), 0))
        .filter(CashMovement.cash_box_id == cash_box_id)
        .scalar()
    )
    return int(total or 0)


def _last_movement(cash_box_id: int) -> CashMovement | None:
    return (
        db.session.query(CashMovement)
        .filter(CashMovement.cash_box_id == cash_box_id)
        .order_by(CashMovement.id.desc())
        .first()
    )


def list_cash_boxes() -> list[dict]:
    """Every box with its balance and most recent movement."""
    result = []
    for box in db.session.query(CashBox).order_by(CashBox.name, CashBox.id).all():
        last = _last_movement(box.id)
        result.append({
            **box.to_dict(),
            "balance_cents": get_cash_box_balance_cents(box.id),
            "last_movement": last.to_dict() if last else None,
        })
    return result


def get_cash_box(cash_box_id: int, movement_limit: int = 100) -> dict:
    box = require_cash_box(cash_box_id)
    movements = (
        db.session.query(CashMovement)
        .filter(CashMovement.cash_box_id == cash_box_id)
        .order_by(CashMovement.created_at.desc(), CashMovement.id.desc())
        .limit(movement_limit)
        .all()
    )
    return {
        **box.to_dict(),
        "balance_cents": get_cash_box_balance_cents(box.id),
        "movements": [m.to_dict() for m in movements],
    }
