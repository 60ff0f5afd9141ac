"""
Payment review engine tests.

Verifies:
- Reporting creates reported_pending with no ledger effect and notifies admins
- confirm credits the ledger and the resolved cash box exactly once
- reject leaves ledger and cash untouched
- A reviewed payment can never be reviewed again (AlreadyProcessed)
"""

import pytest

from backoffice.errors import AlreadyProcessedError, ForbiddenError, NotFoundError, ValidationError
from backoffice.models import AuditLog, CashMovement, DebtLedgerEntry, Notification, Payment
from backoffice.services import cash_service, ledger_service, payment_service


def _report(reseller, actor_id, amount_cents=50000, **kwargs):
    return payment_service.report_payment(
        reseller_id=reseller.id,
        amount_cents=amount_cents,
        reported_by_id=actor_id,
        **kwargs,
    )


# =============================================================================
# REPORT
# =============================================================================


class TestReport:

    def test_report_is_pending_without_ledger_effect(self, db_session, reseller):
        payment = _report(reseller, reseller.user_id)

        assert payment.status == "reported_pending"
        assert payment.currency == "USD"
        assert db_session.query(DebtLedgerEntry).count() == 0

    def test_notifies_every_active_admin(self, db_session, reseller, admin_user):
        _report(reseller, reseller.user_id, amount_cents=12550)

        notification = db_session.query(Notification).filter_by(user_id=admin_user.id).one()
        assert notification.type == "payment_reported"
        assert notification.title == "Pago reportado"
        assert notification.body == "Rita Reseller reportó un pago de 125.50 USD"
        assert db_session.query(AuditLog).filter_by(action="payment.reported").count() == 1

    def test_reseller_cannot_report_for_another(self, db_session, reseller, other_reseller):
        with pytest.raises(ForbiddenError):
            _report(other_reseller, reseller.user_id)
        assert db_session.query(Payment).count() == 0

    def test_admin_can_report_for_any_reseller(self, db_session, reseller, admin_user):
        payment = _report(reseller, admin_user.id)
        assert payment.reported_by_id == admin_user.id

    @pytest.mark.parametrize("kwargs", [
        {"amount_cents": 0},
        {"amount_cents": -100},
        {"currency": "EUR"},
        {"note": "x" * 501},
    ])
    def test_invalid_report(self, db_session, reseller, kwargs):
        with pytest.raises(ValidationError):
            _report(reseller, reseller.user_id, **kwargs)
        assert db_session.query(Payment).count() == 0

    def test_unknown_cash_box(self, db_session, reseller):
        with pytest.raises(NotFoundError):
            _report(reseller, reseller.user_id, cash_box_id=9999)


# =============================================================================
# CONFIRM
# =============================================================================


class TestConfirm:

    def test_confirm_credits_ledger_and_cash_box(self, db_session, reseller, admin_user, cash_box):
        ledger_service.add_debt_entry(reseller_id=reseller.id, amount_cents=80000, entry_type="debit", reason="x")
        db_session.commit()
        payment = _report(reseller, reseller.user_id, amount_cents=50000)

        confirmed = payment_service.confirm_payment(
            payment_id=payment.id, actor_id=admin_user.id, cash_box_id=cash_box.id,
        )

        assert confirmed.status == "confirmed"
        assert confirmed.reviewed_by_id == admin_user.id
        assert confirmed.reviewed_at is not None
        assert confirmed.cash_box_id == cash_box.id
        assert ledger_service.get_debt_balance_cents(reseller.id) == 30000
        assert cash_service.get_cash_box_balance_cents(cash_box.id) == 50000

        credit = ledger_service.list_entries_for_reference("payment", payment.id)
        assert [(e.entry_type, e.amount_cents, e.reason) for e in credit] == [
            ("credit", 50000, "Pago confirmado por administrador"),
        ]
        movement = db_session.query(CashMovement).one()
        assert movement.description == "Pago revendedor confirmado"
        assert movement.reference_id == payment.id

    def test_stored_cash_box_is_used_when_none_given(self, db_session, reseller, admin_user, cash_box):
        payment = _report(reseller, reseller.user_id, amount_cents=7000, cash_box_id=cash_box.id)

        payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id)

        assert cash_service.get_cash_box_balance_cents(cash_box.id) == 7000

    def test_no_cash_box_only_credits_ledger(self, db_session, reseller, admin_user):
        payment = _report(reseller, reseller.user_id, amount_cents=7000)

        payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id)

        assert ledger_service.get_debt_balance_cents(reseller.id) == -7000
        assert db_session.query(CashMovement).count() == 0

    def test_missing_explicit_cash_box_aborts(self, db_session, reseller, admin_user):
        payment = _report(reseller, reseller.user_id)

        with pytest.raises(NotFoundError):
            payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id, cash_box_id=9999)

        assert db_session.get(Payment, payment.id).status == "reported_pending"
        assert db_session.query(DebtLedgerEntry).count() == 0

    def test_second_confirm_is_already_processed(self, db_session, reseller, admin_user, cash_box):
        payment = _report(reseller, reseller.user_id, amount_cents=50000)
        payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id, cash_box_id=cash_box.id)

        with pytest.raises(AlreadyProcessedError):
            payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id, cash_box_id=cash_box.id)

        assert ledger_service.get_debt_balance_cents(reseller.id) == -50000
        assert cash_service.get_cash_box_balance_cents(cash_box.id) == 50000

    def test_retry_with_unknown_cash_box_is_already_processed(self, db_session, reseller, admin_user, cash_box):
        payment = _report(reseller, reseller.user_id, amount_cents=50000)
        payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id, cash_box_id=cash_box.id)

        with pytest.raises(AlreadyProcessedError):
            payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id, cash_box_id=999999)

        assert len(ledger_service.list_entries_for_reference("payment", payment.id)) == 1
        assert db_session.query(CashMovement).count() == 1

    def test_unknown_payment(self, db_session, admin_user):
        with pytest.raises(NotFoundError):
            payment_service.confirm_payment(payment_id=9999, actor_id=admin_user.id)


# =============================================================================
# REJECT
# =============================================================================


class TestReject:

    def test_reject_has_no_money_effect(self, db_session, reseller, admin_user, cash_box):
        payment = _report(reseller, reseller.user_id, cash_box_id=cash_box.id)

        rejected = payment_service.reject_payment(payment_id=payment.id, actor_id=admin_user.id)

        assert rejected.status == "rejected"
        assert ledger_service.get_debt_balance_cents(reseller.id) == 0
        assert cash_service.get_cash_box_balance_cents(cash_box.id) == 0
        assert db_session.query(AuditLog).filter_by(action="payment.rejected").count() == 1

    def test_cannot_confirm_after_reject(self, db_session, reseller, admin_user):
        payment = _report(reseller, reseller.user_id)
        payment_service.reject_payment(payment_id=payment.id, actor_id=admin_user.id)

        with pytest.raises(AlreadyProcessedError):
            payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id)
        assert db_session.query(DebtLedgerEntry).count() == 0

    def test_cannot_reject_after_confirm(self, db_session, reseller, admin_user):
        payment = _report(reseller, reseller.user_id)
        payment_service.confirm_payment(payment_id=payment.id, actor_id=admin_user.id)

        with pytest.raises(AlreadyProcessedError):
            payment_service.reject_payment(payment_id=payment.id, actor_id=admin_user.id)
        assert db_session.get(Payment, payment.id).status == "confirmed"
