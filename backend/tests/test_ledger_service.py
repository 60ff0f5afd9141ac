"""
Debt ledger tests.

Verifies:
- Balance = sum(debit) - sum(credit), folded fresh on every read
- Zero, negative and non-integer amounts are rejected before any write
- Manual adjustments post a tagged entry, audit it and message the reseller
"""

import itertools

import pytest

from backoffice.errors import NotFoundError, ValidationError
from backoffice.models import AuditLog, ChatMessage, DebtLedgerEntry
from backoffice.services import chat_service, ledger_service


# =============================================================================
# BALANCE FOLD
# =============================================================================


class TestBalance:

    def test_unknown_reseller_balance_is_zero(self, db_session):
        assert ledger_service.get_debt_balance_cents(9999) == 0

    @pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
    def test_debits_minus_credits_in_any_order(self, db_session, reseller, order):
        entries = [(50000, "debit"), (20000, "credit"), (1, "debit")]
        for index in order:
            amount_cents, entry_type = entries[index]
            ledger_service.add_debt_entry(
                reseller_id=reseller.id, amount_cents=amount_cents, entry_type=entry_type, reason="x",
            )
        db_session.commit()

        assert ledger_service.get_debt_balance_cents(reseller.id) == 30001

    def test_balance_can_go_negative(self, db_session, reseller):
        ledger_service.add_debt_entry(reseller_id=reseller.id, amount_cents=100, entry_type="credit", reason="a")
        db_session.commit()

        assert ledger_service.get_debt_balance_cents(reseller.id) == -100

    def test_balances_are_per_reseller(self, db_session, reseller, other_reseller):
        ledger_service.add_debt_entry(reseller_id=reseller.id, amount_cents=700, entry_type="debit", reason="a")
        ledger_service.add_debt_entry(reseller_id=other_reseller.id, amount_cents=300, entry_type="debit", reason="b")
        db_session.commit()

        summary = {row["reseller_id"]: row["balance_cents"] for row in ledger_service.debt_summary()}
        assert summary == {reseller.id: 700, other_reseller.id: 300}


# =============================================================================
# ENTRY VALIDATION
# =============================================================================


class TestAddEntryValidation:

    @pytest.mark.parametrize("amount", [0, -1, 10.5, "100", True, None])
    def test_rejects_bad_amounts(self, db_session, reseller, amount):
        with pytest.raises(ValidationError):
            ledger_service.add_debt_entry(reseller_id=reseller.id, amount_cents=amount, entry_type="debit", reason="x")
        assert db_session.query(DebtLedgerEntry).count() == 0

    def test_rejects_unknown_entry_type(self, db_session, reseller):
        with pytest.raises(ValidationError):
            ledger_service.add_debt_entry(reseller_id=reseller.id, amount_cents=100, entry_type="refund", reason="x")

    def test_rejects_blank_reason(self, db_session, reseller):
        with pytest.raises(ValidationError):
            ledger_service.add_debt_entry(reseller_id=reseller.id, amount_cents=100, entry_type="debit", reason="  ")


# =============================================================================
# MANUAL ADJUSTMENTS
# =============================================================================


class TestManualAdjustment:

    def test_posts_tagged_entry_and_audit(self, db_session, reseller, admin_user):
        entry = ledger_service.record_manual_adjustment(
            reseller_id=reseller.id,
            entry_type="debit",
            amount_cents=12345,
            reason="Saldo inicial",
            actor_id=admin_user.id,
        )

        assert entry.reference_type == "manual_admin_adjustment"
        assert ledger_service.get_debt_balance_cents(reseller.id) == 12345
        audit = db_session.query(AuditLog).filter_by(action="debt.entry.created").one()
        assert audit.entity_id == entry.id
        assert audit.actor_id == admin_user.id

    def test_messages_reseller_when_dm_exists(self, db_session, reseller, admin_user):
        conversation = chat_service.open_direct_conversation(reseller.id)

        ledger_service.record_manual_adjustment(
            reseller_id=reseller.id,
            entry_type="credit",
            amount_cents=5000,
            reason="Bonificación",
            actor_id=admin_user.id,
        )

        bodies = [m.body for m in db_session.query(ChatMessage).filter_by(conversation_id=conversation.id)]
        assert bodies == ["Se registró un ajuste a favor por 50.00 USD."]

    def test_unknown_reseller(self, db_session, admin_user):
        with pytest.raises(NotFoundError):
            ledger_service.record_manual_adjustment(
                reseller_id=424242,
                entry_type="debit",
                amount_cents=100,
                reason="x",
                actor_id=admin_user.id,
            )


def test_format_cents():
    assert ledger_service.format_cents(0) == "0.00"
    assert ledger_service.format_cents(5) == "0.05"
    assert ledger_service.format_cents(123456) == "1234.56"
    assert ledger_service.format_cents(-250) == "-2.50"
