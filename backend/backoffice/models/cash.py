from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

MOVEMENT_CREDIT = "credit"
MOVEMENT_DEBIT = "debit"
VALID_MOVEMENT_TYPES = (MOVEMENT_CREDIT, MOVEMENT_DEBIT)

VALID_BOX_CURRENCIES = ("USD", "ARS", "USDT")
VALID_BOX_TYPES = ("general", "petty", "crypto")


class CashBox(db.Model):
    """Named pool of money; balance is derived from its movements."""
    __tablename__ = "cash_boxes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="USD")
    type = db.Column(db.String(16), nullable=False, default="general")  # general, petty, crypto
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "currency": self.currency,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }


class CashMovement(db.Model):
    """
    Append-only cash box log. credit adds to the box, debit subtracts.
    A transfer between boxes is two independent movements.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.Index("ix_cash_movements_box_created", "cash_box_id", "created_at"),
        db.CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cash_box_id = db.Column(db.Integer, db.ForeignKey("cash_boxes.id"), nullable=False, index=True)
    type = db.Column(db.String(8), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cash_box = db.relationship("CashBox", backref=db.backref("movements", lazy=True))

    def signed_cents(self) -> int:
        return self.amount_cents if self.type == MOVEMENT_CREDIT else -self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_box_id": self.cash_box_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "description": self.description,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_at": to_utc_z(self.created_at),
        }
