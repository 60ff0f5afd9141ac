# Overview: Consignment engine; hands devices to resellers and closes them as sold or returned.

"""
Consignment Engine

Every transition is one database transaction covering the consignment row,
its movement, the device state and the ledger entry. Audit records and
chat messages run afterwards as post-commit effects.

LIFECYCLE:
    (device available) --assign--> active --mark_sold--> sold
                                       \\--return------> returned

Ledger semantics:
- assign debits (price - amount paid) when positive, price being the agreed
  sale price or else the device cost. Overpayment never becomes a credit.
- mark_sold debits the reported sale amount again, on top of the assignment
  debit. Both entries are tagged to the consignment.
- return has no ledger effect.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AlreadyConsignedError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from ..extensions import db
from ..models import Consignment, ConsignmentMovement, Device, Reseller, User
from ..models.auth import ROLE_RESELLER
from ..models.ledger import ENTRY_DEBIT
from ..time_utils import utcnow
from ..validation import optional_cents, optional_text, require_cents, require_choice
from . import audit_service, chat_service, device_service, ledger_service
from .concurrency import guarded_update, lock_for_update, run_with_retry
from .ledger_service import format_cents
from .post_commit import PostCommitEffects


# =============================================================================
# CONSTANTS
# =============================================================================

STATUS_ACTIVE = "active"
STATUS_SOLD = "sold"
STATUS_RETURNED = "returned"

MOVEMENT_ASSIGNED = "assigned"
MOVEMENT_SOLD = "sold"
MOVEMENT_RETURNED = "returned"

PAYMENT_CONSIGNMENT = "consignacion"
PAYMENT_METHODS = (PAYMENT_CONSIGNMENT, "usdt", "transferencia", "dolar_billete")
PAYMENT_METHOD_LABELS = {
    "consignacion": "consignación",
    "usdt": "USDT",
    "transferencia": "transferencia",
    "dolar_billete": "dólar billete",
}


# =============================================================================
# QUERIES
# =============================================================================

def get_consignment(consignment_id: int) -> Consignment:
    consignment = db.session.get(Consignment, consignment_id)
    if not consignment:
        raise NotFoundError("Consignación no encontrada")
    return consignment


def list_consignments(*, reseller_id: int | None = None, status: str | None = None):
    query = db.session.query(Consignment)
    if reseller_id is not None:
        query = query.filter(Consignment.reseller_id == reseller_id)
    if status:
        query = query.filter(Consignment.status == status)
    return query.order_by(Consignment.assigned_at.desc(), Consignment.id.desc())


def find_active_consignment(device_id: int) -> Consignment | None:
    return (
        db.session.query(Consignment)
        .filter_by(device_id=device_id, status=STATUS_ACTIVE)
        .first()
    )


# =============================================================================
# MESSAGE BUILDERS
# =============================================================================

def _assignment_note(note: str | None, payment_method: str, amount_paid_cents: int) -> str | None:
    parts = [note]
    if payment_method != PAYMENT_CONSIGNMENT:
        parts.append(f"Pago: {payment_method}, {format_cents(amount_paid_cents)} USD")
    joined = " · ".join(p for p in parts if p)
    return joined or None


def _assignment_debit_reason(model: str, payment_method: str, amount_paid_cents: int) -> str:
    reason = f"Pedido/consignación: {model}"
    if amount_paid_cents > 0:
        label = PAYMENT_METHOD_LABELS.get(payment_method, payment_method)
        reason += f" — pagó {format_cents(amount_paid_cents)} USD ({label}), saldo pendiente"
    return reason


def _assignment_message(model: str, sale_price_cents, price_cents: int, amount_paid_cents: int, debt_cents: int) -> str:
    if amount_paid_cents > 0:
        return (
            f"Se asignó equipo {model}. Valor venta {format_cents(price_cents)} USD. "
            f"Pagó {format_cents(amount_paid_cents)} USD; saldo a debitar: {format_cents(debt_cents)} USD."
        )
    if sale_price_cents:
        return f"Se asignó equipo {model} en consignación. Valor de venta: {format_cents(sale_price_cents)} USD."
    return f"Se asignó equipo {model} en consignación."


# =============================================================================
# TRANSITIONS
# =============================================================================

def assign_consignment(
    *,
    device_id: int,
    reseller_id: int,
    assigned_by_id: int,
    note: str | None = None,
    payment_method: str | None = PAYMENT_CONSIGNMENT,
    sale_price_cents: int | None = None,
    amount_paid_cents: int | None = 0,
) -> Consignment:
    """
    Hand an available device to a reseller.

    Args:
        sale_price_cents: agreed price; falls back to the device cost, then 0
        amount_paid_cents: paid up front; only the remainder becomes debt

    Raises:
        ValidationError: bad payment method, negative or non-integer amounts
        NotFoundError: device or reseller missing
        AlreadyConsignedError: the device already has an active consignment
        InvalidStateError: the device is not available
    """
    method = payment_method or PAYMENT_CONSIGNMENT
    require_choice(method, PAYMENT_METHODS, "payment_method")
    sale_price = optional_cents(sale_price_cents, "sale_price_cents")
    amount_paid = require_cents(amount_paid_cents or 0, "amount_paid_cents", allow_zero=True)
    note = optional_text(note, "note", max_length=500)

    def _op():
        device = lock_for_update(db.session.query(Device).filter_by(id=device_id)).first()
        if not device:
            raise NotFoundError("Equipo no encontrado")
        reseller = db.session.get(Reseller, reseller_id)
        if not reseller:
            raise NotFoundError("Revendedor no encontrado")

        if find_active_consignment(device.id):
            raise AlreadyConsignedError("El equipo ya tiene una consignación activa")
        if device.state != device_service.STATE_AVAILABLE:
            raise InvalidStateError("El equipo no está disponible para consignación")

        catalog = device_service.load_status_catalog()
        model = device.model
        price_cents = sale_price if sale_price is not None else (device.cost_cents or 0)
        debt_cents = price_cents - amount_paid

        consignment = Consignment(
            device_id=device.id,
            reseller_id=reseller.id,
            assigned_by_id=assigned_by_id,
            status=STATUS_ACTIVE,
            payment_method=method,
            sale_price_cents=sale_price,
            amount_paid_cents=amount_paid,
        )
        db.session.add(consignment)
        db.session.flush()

        db.session.add(ConsignmentMovement(
            consignment_id=consignment.id,
            movement_type=MOVEMENT_ASSIGNED,
            note=_assignment_note(note, method, amount_paid),
            created_by_id=assigned_by_id,
        ))
        device_service.assign_to_consignment(device.id, reseller.id, catalog=catalog)

        if debt_cents > 0:
            ledger_service.add_debt_entry(
                reseller_id=reseller.id,
                amount_cents=debt_cents,
                entry_type=ENTRY_DEBIT,
                reason=_assignment_debit_reason(model, method, amount_paid),
                reference_type=ledger_service.REFERENCE_CONSIGNMENT,
                reference_id=consignment.id,
            )

        db.session.commit()
        return consignment, model, price_cents, debt_cents

    try:
        consignment, model, price_cents, debt_cents = run_with_retry(_op)
    except IntegrityError:
        # Lost the race on the active-consignment unique index
        raise AlreadyConsignedError("El equipo ya tiene una consignación activa")

    current_app.logger.info(
        "Device %s consigned to reseller %s (consignment %s, debt %s cents)",
        device_id, reseller_id, consignment.id, max(debt_cents, 0),
    )

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=assigned_by_id,
        action="consignment.assigned",
        entity_type="consignment",
        entity_id=consignment.id,
        meta={
            "device_id": device_id,
            "reseller_id": reseller_id,
            "payment_method": method,
            "sale_price_cents": sale_price,
            "amount_paid_cents": amount_paid,
        },
    )
    effects.add(
        "chat",
        chat_service.create_system_message_for_reseller,
        reseller_id,
        _assignment_message(model, sale_price, price_cents, amount_paid, debt_cents),
    )
    effects.run()
    return consignment


def _close_active(consignment: Consignment, new_status: str) -> None:
    """Conditional status update; fails if another request closed it first."""
    updated = guarded_update(
        db.session.query(Consignment).filter(
            Consignment.id == consignment.id,
            Consignment.status == STATUS_ACTIVE,
        ),
        {
            "status": new_status,
            "closed_at": utcnow(),
            "version_id": Consignment.version_id + 1,
        },
    )
    if updated != 1:
        raise InvalidStateError("La consignación no está activa")
    db.session.refresh(consignment)


def mark_consignment_sold(
    *,
    consignment_id: int,
    actor_id: int,
    sale_amount_cents: int,
    note: str | None = None,
) -> Consignment:
    """
    Close an active consignment as sold and debit the sale amount.

    Resellers may only close their own consignments.

    Raises:
        ValidationError: sale amount not a positive integer
        NotFoundError: consignment missing
        ForbiddenError: reseller acting on another reseller's consignment
        InvalidStateError: consignment is not active
    """
    sale_amount = require_cents(sale_amount_cents, "sale_amount_cents")
    note = optional_text(note, "note", max_length=500)

    def _op():
        consignment = lock_for_update(db.session.query(Consignment).filter_by(id=consignment_id)).first()
        if not consignment:
            raise NotFoundError("Consignación no encontrada")

        actor = db.session.get(User, actor_id)
        if actor is not None and actor.role == ROLE_RESELLER:
            if consignment.reseller is None or consignment.reseller.user_id != actor_id:
                raise ForbiddenError("No autorizado para esta consignación")

        if consignment.status != STATUS_ACTIVE:
            raise InvalidStateError("La consignación no está activa")

        catalog = device_service.load_status_catalog()
        _close_active(consignment, STATUS_SOLD)
        db.session.add(ConsignmentMovement(
            consignment_id=consignment.id,
            movement_type=MOVEMENT_SOLD,
            note=note,
            created_by_id=actor_id,
        ))
        device = device_service.mark_sold(consignment.device_id, catalog=catalog)
        ledger_service.add_debt_entry(
            reseller_id=consignment.reseller_id,
            amount_cents=sale_amount,
            entry_type=ENTRY_DEBIT,
            reason="Venta de equipo en consignación",
            reference_type=ledger_service.REFERENCE_CONSIGNMENT,
            reference_id=consignment.id,
        )

        db.session.commit()
        return consignment, device.model

    consignment, model = run_with_retry(_op)
    current_app.logger.info(
        "Consignment %s sold for %s cents by user %s", consignment_id, sale_amount, actor_id,
    )

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="consignment.sold",
        entity_type="consignment",
        entity_id=consignment.id,
        meta={"sale_amount_cents": sale_amount, "device_id": consignment.device_id},
    )
    effects.add(
        "chat",
        chat_service.create_system_message_for_reseller,
        consignment.reseller_id,
        f"Venta registrada: {model}. Deuda incrementada en {format_cents(sale_amount)} USD.",
    )
    effects.run()
    return consignment


def return_consignment(*, consignment_id: int, actor_id: int, note: str | None = None) -> Consignment:
    """
    Close an active consignment as returned; the device goes back to the
    office unassigned. No ledger effect: corrections are manual adjustments.
    """
    note = optional_text(note, "note", max_length=500)

    def _op():
        consignment = lock_for_update(db.session.query(Consignment).filter_by(id=consignment_id)).first()
        if not consignment:
            raise NotFoundError("Consignación no encontrada")
        if consignment.status != STATUS_ACTIVE:
            raise InvalidStateError("La consignación no está activa")

        catalog = device_service.load_status_catalog()
        _close_active(consignment, STATUS_RETURNED)
        db.session.add(ConsignmentMovement(
            consignment_id=consignment.id,
            movement_type=MOVEMENT_RETURNED,
            note=note,
            created_by_id=actor_id,
        ))
        device = device_service.mark_returned(consignment.device_id, catalog=catalog)
        db.session.commit()
        return consignment, device.model

    consignment, model = run_with_retry(_op)
    current_app.logger.info("Consignment %s returned by user %s", consignment_id, actor_id)

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="consignment.returned",
        entity_type="consignment",
        entity_id=consignment.id,
        meta={"device_id": consignment.device_id},
    )
    effects.add(
        "chat",
        chat_service.create_system_message_for_reseller,
        consignment.reseller_id,
        f"Se registró la devolución del equipo {model}.",
    )
    effects.run()
    return consignment
