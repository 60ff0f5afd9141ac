# Overview: Payment review engine; resellers report payments, admins confirm or reject them.

"""
Payment Review Engine

LIFECYCLE:
    reported_pending --confirm--> confirmed
                     --reject---> rejected

Review is exactly-once: both transitions run a conditional UPDATE guarded by
status = 'reported_pending' and check the affected-row count, so concurrent
or retried reviews get AlreadyProcessedError instead of a second credit.

Only confirmation touches money: in the same transaction it appends a credit
to the debt ledger and, when a cash box resolves, a credit cash movement.
"""

from __future__ import annotations

from flask import current_app

from ..errors import AlreadyProcessedError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Payment, Reseller, User
from ..models.auth import ROLE_RESELLER
from ..models.cash import MOVEMENT_CREDIT, VALID_BOX_CURRENCIES
from ..models.ledger import ENTRY_CREDIT
from ..models.payments import STATUS_CONFIRMED, STATUS_REJECTED, STATUS_REPORTED_PENDING
from ..time_utils import utcnow
from ..validation import optional_text, require_cents, require_choice
from . import audit_service, cash_service, chat_service, ledger_service, notification_service
from .concurrency import guarded_update, run_with_retry
from .ledger_service import format_cents
from .post_commit import PostCommitEffects

VALID_PAYMENT_CURRENCIES = VALID_BOX_CURRENCIES


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Pago no encontrado")
    return payment


def list_payments(*, reseller_id: int | None = None, status: str | None = None):
    query = db.session.query(Payment)
    if reseller_id is not None:
        query = query.filter(Payment.reseller_id == reseller_id)
    if status:
        query = query.filter(Payment.status == status)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc())


def report_payment(
    *,
    reseller_id: int,
    amount_cents: int,
    reported_by_id: int,
    currency: str = "USD",
    note: str | None = None,
    receipt_key: str | None = None,
    cash_box_id: int | None = None,
) -> Payment:
    """
    Record a payment the reseller says it made. Nothing is credited until
    an admin confirms it.

    Raises:
        ValidationError: non-positive amount, unknown currency, note too long
        NotFoundError: reseller or cash box missing
        ForbiddenError: reseller reporting for someone else
    """
    require_cents(amount_cents, "amount_cents")
    require_choice(currency, VALID_PAYMENT_CURRENCIES, "currency")
    note = optional_text(note, "note", max_length=500)
    receipt_key = optional_text(receipt_key, "receipt_key", max_length=255)

    reseller = db.session.get(Reseller, reseller_id)
    if not reseller:
        raise NotFoundError("Revendedor no encontrado")

    actor = db.session.get(User, reported_by_id)
    if actor is not None and actor.role == ROLE_RESELLER and reseller.user_id != actor.id:
        raise ForbiddenError("No autorizado para reportar este pago")

    if cash_box_id is not None:
        cash_service.require_cash_box(cash_box_id)

    payment = Payment(
        reseller_id=reseller.id,
        amount_cents=amount_cents,
        currency=currency,
        note=note,
        receipt_key=receipt_key,
        reported_by_id=reported_by_id,
        status=STATUS_REPORTED_PENDING,
        cash_box_id=cash_box_id,
    )
    db.session.add(payment)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    amount_text = f"{format_cents(amount_cents)} {currency}"
    reseller_name = reseller.user.name if reseller.user else f"Revendedor {reseller.id}"
    current_app.logger.info("Payment %s reported for reseller %s (%s)", payment.id, reseller.id, amount_text)

    effects = PostCommitEffects()
    effects.add(
        "notify_admins",
        notification_service.notify_admins,
        type="payment_reported",
        title="Pago reportado",
        body=f"{reseller_name} reportó un pago de {amount_text}",
    )
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=reported_by_id,
        action="payment.reported",
        entity_type="payment",
        entity_id=payment.id,
    )
    effects.add(
        "chat",
        chat_service.create_system_message_for_reseller,
        reseller.id,
        f"Pago reportado por {amount_text}. Queda pendiente de confirmación.",
    )
    effects.run()
    return payment


def _review(payment_id: int, actor_id: int, new_status: str, extra: dict | None = None) -> Payment:
    """Move a pending payment to new_status; AlreadyProcessed if it moved first."""
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Pago no encontrado")
    if payment.status != STATUS_REPORTED_PENDING:
        raise AlreadyProcessedError("El pago ya fue procesado")

    values = {
        "status": new_status,
        "reviewed_by_id": actor_id,
        "reviewed_at": utcnow(),
        "version_id": Payment.version_id + 1,
    }
    values.update(extra or {})
    updated = guarded_update(
        db.session.query(Payment).filter(
            Payment.id == payment_id,
            Payment.status == STATUS_REPORTED_PENDING,
        ),
        values,
    )
    if updated != 1:
        raise AlreadyProcessedError("El pago ya fue procesado")
    db.session.refresh(payment)
    return payment


def confirm_payment(*, payment_id: int, actor_id: int, cash_box_id: int | None = None) -> Payment:
    """
    Confirm a pending payment: credit the ledger and, if a cash box is given
    or stored on the payment, credit that box. One transaction.

    Raises:
        NotFoundError: payment or cash box missing
        AlreadyProcessedError: already confirmed or rejected
    """
    def _op():
        payment = db.session.get(Payment, payment_id)
        if not payment:
            raise NotFoundError("Pago no encontrado")
        if payment.status != STATUS_REPORTED_PENDING:
            raise AlreadyProcessedError("El pago ya fue procesado")
        box_id = cash_box_id if cash_box_id is not None else payment.cash_box_id
        if box_id is not None:
            cash_service.require_cash_box(box_id)

        payment = _review(payment_id, actor_id, STATUS_CONFIRMED, {"cash_box_id": box_id})
        ledger_service.add_debt_entry(
            reseller_id=payment.reseller_id,
            amount_cents=payment.amount_cents,
            entry_type=ENTRY_CREDIT,
            reason="Pago confirmado por administrador",
            reference_type=ledger_service.REFERENCE_PAYMENT,
            reference_id=payment.id,
        )
        if box_id is not None:
            cash_service.add_cash_movement(
                cash_box_id=box_id,
                type=MOVEMENT_CREDIT,
                amount_cents=payment.amount_cents,
                currency=payment.currency,
                description="Pago revendedor confirmado",
                reference_type=cash_service.REFERENCE_PAYMENT,
                reference_id=payment.id,
            )
        db.session.commit()
        return payment

    payment = run_with_retry(_op)
    current_app.logger.info(
        "Payment %s confirmed by user %s (%s cents, cash box %s)",
        payment.id, actor_id, payment.amount_cents, payment.cash_box_id,
    )

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="payment.confirmed",
        entity_type="payment",
        entity_id=payment.id,
        meta={"cash_box_id": payment.cash_box_id},
    )
    effects.add(
        "chat",
        chat_service.create_system_message_for_reseller,
        payment.reseller_id,
        f"Pago confirmado por {format_cents(payment.amount_cents)} {payment.currency}. La deuda fue actualizada.",
    )
    effects.run()
    return payment


def reject_payment(*, payment_id: int, actor_id: int) -> Payment:
    """Reject a pending payment. No ledger or cash effect."""
    def _op():
        payment = _review(payment_id, actor_id, STATUS_REJECTED)
        db.session.commit()
        return payment

    payment = run_with_retry(_op)
    current_app.logger.info("Payment %s rejected by user %s", payment.id, actor_id)

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="payment.rejected",
        entity_type="payment",
        entity_id=payment.id,
    )
    effects.add(
        "chat",
        chat_service.create_system_message_for_reseller,
        payment.reseller_id,
        "Pago rechazado por administrador. La deuda no se modificó.",
    )
    effects.run()
    return payment
