"""
Cash box tests.

Verifies:
- Balance = sum(credit) - sum(debit) per box
- Manual movements use the box currency and are tagged manual
- Listing carries balance and the most recent movement
"""

import pytest

from backoffice.errors import NotFoundError, ValidationError
from backoffice.models import CashBox, CashMovement
from backoffice.services import cash_service


class TestCashBoxes:

    def test_create_cash_box(self, db_session):
        box = cash_service.create_cash_box(name="  Caja ARS ", currency="ARS", type="petty")

        assert box.name == "Caja ARS"
        assert (box.currency, box.type) == ("ARS", "petty")

    @pytest.mark.parametrize("kwargs", [
        {"name": ""},
        {"name": "Caja", "currency": "EUR"},
        {"name": "Caja", "type": "vault"},
    ])
    def test_create_validation(self, db_session, kwargs):
        with pytest.raises(ValidationError):
            cash_service.create_cash_box(**kwargs)
        assert db_session.query(CashBox).count() == 0

    def test_unknown_box(self, db_session):
        with pytest.raises(NotFoundError):
            cash_service.get_cash_box(9999)


class TestMovements:

    def test_balance_is_credits_minus_debits(self, db_session, cash_box):
        cash_service.record_manual_movement(cash_box_id=cash_box.id, type="credit", amount_cents=10000, description="Ingreso")
        cash_service.record_manual_movement(cash_box_id=cash_box.id, type="debit", amount_cents=2500, description="Viáticos")

        assert cash_service.get_cash_box_balance_cents(cash_box.id) == 7500

    def test_manual_movement_uses_box_currency(self, db_session):
        box = cash_service.create_cash_box(name="Cripto", currency="USDT", type="crypto")

        movement = cash_service.record_manual_movement(cash_box_id=box.id, type="credit", amount_cents=100, description="x")

        assert movement.currency == "USDT"
        assert movement.reference_type == "manual"

    @pytest.mark.parametrize("kwargs", [
        {"type": "transfer", "amount_cents": 100, "description": "x"},
        {"type": "credit", "amount_cents": 0, "description": "x"},
        {"type": "credit", "amount_cents": 100, "description": ""},
    ])
    def test_invalid_movement_writes_nothing(self, db_session, cash_box, kwargs):
        with pytest.raises(ValidationError):
            cash_service.record_manual_movement(cash_box_id=cash_box.id, **kwargs)
        assert db_session.query(CashMovement).count() == 0

    def test_movement_into_unknown_box(self, db_session):
        with pytest.raises(NotFoundError):
            cash_service.record_manual_movement(cash_box_id=9999, type="credit", amount_cents=1, description="x")

    def test_list_includes_balance_and_last_movement(self, db_session, cash_box):
        empty = cash_service.create_cash_box(name="Vacía")
        cash_service.record_manual_movement(cash_box_id=cash_box.id, type="credit", amount_cents=500, description="Primero")
        cash_service.record_manual_movement(cash_box_id=cash_box.id, type="credit", amount_cents=700, description="Segundo")

        rows = {row["id"]: row for row in cash_service.list_cash_boxes()}

        assert rows[cash_box.id]["balance_cents"] == 1200
        assert rows[cash_box.id]["last_movement"]["description"] == "Segundo"
        assert rows[empty.id]["balance_cents"] == 0
        assert rows[empty.id]["last_movement"] is None

    def test_detail_limits_movements(self, db_session, cash_box):
        for i in range(3):
            cash_service.record_manual_movement(cash_box_id=cash_box.id, type="credit", amount_cents=100, description=f"m{i}")

        detail = cash_service.get_cash_box(cash_box.id, movement_limit=2)

        assert detail["balance_cents"] == 300
        assert len(detail["movements"]) == 2
