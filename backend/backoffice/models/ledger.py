from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ENTRY_DEBIT = "debit"
ENTRY_CREDIT = "credit"
VALID_ENTRY_TYPES = (ENTRY_DEBIT, ENTRY_CREDIT)


class DebtLedgerEntry(db.Model):
    """
    Append-only reseller debt ledger.

    amount_cents is always positive; entry_type carries the sign.
    debit raises what the reseller owes, credit lowers it.

    IMMUTABLE: rows are never updated. Only the reseller cascade delete
    removes them.
    """
    __tablename__ = "debt_ledger_entries"
    __table_args__ = (
        db.Index("ix_debt_entries_reseller_created", "reseller_id", "created_at"),
        db.Index("ix_debt_entries_reference", "reference_type", "reference_id"),
        db.CheckConstraint("amount_cents > 0", name="ck_debt_entries_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reseller_id = db.Column(db.Integer, db.ForeignKey("resellers.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    entry_type = db.Column(db.String(8), nullable=False)  # debit, credit
    reason = db.Column(db.String(500), nullable=False)

    # What produced the entry: consignment, payment, manual_admin_adjustment
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def signed_cents(self) -> int:
        return self.amount_cents if self.entry_type == ENTRY_DEBIT else -self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reseller_id": self.reseller_id,
            "amount_cents": self.amount_cents,
            "entry_type": self.entry_type,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_at": to_utc_z(self.created_at),
        }
