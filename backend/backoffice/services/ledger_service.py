# Overview: Service-layer operations for the reseller debt ledger.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import DebtLedgerEntry, Reseller
from ..models.ledger import ENTRY_DEBIT, VALID_ENTRY_TYPES
from ..validation import require_cents, require_choice, require_text
from . import audit_service, chat_service
from .post_commit import PostCommitEffects
"""
Debt Ledger Invariants (authoritative)

- Append-only: entries are inserted, never updated.
- amount_cents > 0 always; entry_type carries the sign.
- Balance = sum(debit) - sum(credit) in integer cents, folded fresh on
  every read. It may be negative (the reseller is owed money).
- add_debt_entry only flushes: it joins the caller's transaction.
"""

REFERENCE_CONSIGNMENT = "consignment"
REFERENCE_PAYMENT = "payment"
REFERENCE_MANUAL = "manual_admin_adjustment"


def add_debt_entry(
    *,
    reseller_id: int,
    amount_cents: int,
    entry_type: str,
    reason: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> DebtLedgerEntry:
    """
    Append one signed entry.

    The store defends itself even though callers validate first: zero,
    negative or non-integer amounts raise ValidationError.
    """
    require_cents(amount_cents, "amount_cents")
    require_choice(entry_type, VALID_ENTRY_TYPES, "entry_type")
    reason = require_text(reason, "reason", max_length=500)

    entry = DebtLedgerEntry(
        reseller_id=reseller_id,
        amount_cents=amount_cents,
        entry_type=entry_type,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def get_debt_balance_cents(reseller_id: int) -> int:
    """Fold every entry of the reseller. Unknown reseller folds to 0."""
    rows = (
        db.session.query(DebtLedgerEntry.entry_type, DebtLedgerEntry.amount_cents)
        .filter(DebtLedgerEntry.reseller_id == reseller_id)
        .all()
    )
    balance = 0
    for entry_type, amount_cents in rows:
        if entry_type == ENTRY_DEBIT:
            balance += amount_cents
        else:
            balance -= amount_cents
    return balance


def list_debt_entries(reseller_id: int, limit: int = 50) -> list[DebtLedgerEntry]:
    return (
        db.session.query(DebtLedgerEntry)
        .filter(DebtLedgerEntry.reseller_id == reseller_id)
        .order_by(DebtLedgerEntry.created_at.desc(), DebtLedgerEntry.id.desc())
        .limit(limit)
        .all()
    )


def list_entries_for_reference(reference_type: str, reference_id: int) -> list[DebtLedgerEntry]:
    return (
        db.session.query(DebtLedgerEntry)
        .filter_by(reference_type=reference_type, reference_id=reference_id)
        .order_by(DebtLedgerEntry.id)
        .all()
    )


def debt_summary() -> list[dict]:
    """Every reseller with its current balance, for the admin overview."""
    resellers = db.session.query(Reseller).order_by(Reseller.id).all()
    return [
        {
            "reseller_id": reseller.id,
            "reseller_name": reseller.user.name if reseller.user else None,
            "balance_cents": get_debt_balance_cents(reseller.id),
        }
        for reseller in resellers
    ]


def record_manual_adjustment(
    *,
    reseller_id: int,
    entry_type: str,
    amount_cents: int,
    reason: str,
    actor_id: int,
) -> DebtLedgerEntry:
    """
    Admin-entered debit or credit (corrections, opening balances).

    Raises:
        ValidationError: bad amount, type or blank reason
        NotFoundError: reseller does not exist
    """
    require_cents(amount_cents, "amount_cents")
    require_choice(entry_type, VALID_ENTRY_TYPES, "entry_type")
    reason = require_text(reason, "reason", max_length=500)

    reseller = db.session.get(Reseller, reseller_id)
    if not reseller:
        raise NotFoundError("Revendedor no encontrado")

    try:
        entry = add_debt_entry(
            reseller_id=reseller_id,
            amount_cents=amount_cents,
            entry_type=entry_type,
            reason=reason,
            reference_type=REFERENCE_MANUAL,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Manual %s of %s cents posted for reseller %s by user %s",
        entry_type, amount_cents, reseller_id, actor_id,
    )

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="debt.entry.created",
        entity_type="debt_ledger_entry",
        entity_id=entry.id,
        meta={"reseller_id": reseller_id, "entry_type": entry_type, "amount_cents": amount_cents},
    )
    if entry_type == ENTRY_DEBIT:
        body = f"Se registró un ajuste de deuda por {format_cents(amount_cents)} USD."
    else:
        body = f"Se registró un ajuste a favor por {format_cents(amount_cents)} USD."
    effects.add("chat", chat_service.create_system_message_for_reseller, reseller_id, body)
    effects.run()
    return entry


def format_cents(amount_cents: int) -> str:
    """12345 -> '123.45' using integer math only."""
    sign = "-" if amount_cents < 0 else ""
    whole, cents = divmod(abs(amount_cents), 100)
    return f"{sign}{whole}.{cents:02d}"
