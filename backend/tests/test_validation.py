"""
Payload validation and money parsing tests.
"""

import pytest

from backoffice.errors import ValidationError
from backoffice.models import Device
from backoffice.services.device_service import DEVICE_CREATE_POLICY
from backoffice.validation import (
    MAX_AMOUNT_CENTS,
    amount_to_cents,
    cents_from_payload,
    optional_cents_from_payload,
    require_cents,
    require_id,
    validate_payload,
)


@pytest.mark.parametrize("amount,expected", [
    ("10", 1000),
    ("10.5", 1050),
    (0.1, 10),
    ("0.005", 1),
    ("1234.564", 123456),
    (25, 2500),
])
def test_amount_to_cents_rounds_half_up(amount, expected):
    assert amount_to_cents(amount) == expected


@pytest.mark.parametrize("amount", ["abc", "", None, True, "NaN", "-1", "0"])
def test_amount_to_cents_rejects(amount):
    with pytest.raises(ValidationError):
        amount_to_cents(amount)


def test_amount_cap_fits_integer_columns():
    assert require_cents(MAX_AMOUNT_CENTS, "amount_cents") == 999_999_999
    assert amount_to_cents("9999999.99") == MAX_AMOUNT_CENTS
    for too_big in (MAX_AMOUNT_CENTS + 1, 3_000_000_000):
        with pytest.raises(ValidationError):
            require_cents(too_big, "amount_cents")
    with pytest.raises(ValidationError):
        cents_from_payload({"amount": "10000000.00"})


def test_cents_key_wins_over_amount():
    assert cents_from_payload({"amount_cents": 150, "amount": "99"}) == 150
    assert cents_from_payload({"amount": "1.50"}) == 150


def test_cents_missing():
    with pytest.raises(ValidationError):
        cents_from_payload({})


def test_optional_cents_allows_zero_and_absence():
    keys = {"cents_key": "amount_paid_cents", "amount_key": "amount_paid"}
    assert optional_cents_from_payload({}, **keys) is None
    assert optional_cents_from_payload({"amount_paid": "0"}, **keys) == 0
    assert optional_cents_from_payload({"amount_paid_cents": 300}, **keys) == 300


def test_integer_columns_coerce_digit_strings():
    patch = validate_payload(
        model=Device,
        payload={"imei": " 356 ", "model": "X", "cost_cents": "1500"},
        policy=DEVICE_CREATE_POLICY,
        partial=False,
    )
    assert patch == {"imei": "356", "model": "X", "cost_cents": 1500}


@pytest.mark.parametrize("raw", ["1.5", "1e3", True, 2.0])
def test_integer_columns_reject_non_integers(raw):
    with pytest.raises(ValidationError):
        validate_payload(
            model=Device,
            payload={"imei": "356", "model": "X", "cost_cents": raw},
            policy=DEVICE_CREATE_POLICY,
            partial=False,
        )


def test_require_id():
    assert require_id("12", "id") == 12
    assert require_id(3, "id") == 3
    for bad in (0, -1, "x", None, True):
        with pytest.raises(ValidationError):
            require_id(bad, "id")
