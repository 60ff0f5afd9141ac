from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

STATUS_REPORTED_PENDING = "reported_pending"
STATUS_CONFIRMED = "confirmed"
STATUS_REJECTED = "rejected"


class Payment(db.Model):
    """
    Money a reseller says it paid, waiting for admin review.

    LIFECYCLE: reported_pending -> confirmed | rejected.
    Terminal once reviewed; only confirmation touches the ledgers.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_reseller_created", "reseller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reseller_id = db.Column(db.Integer, db.ForeignKey("resellers.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="USD")
    note = db.Column(db.String(500), nullable=True)
    receipt_key = db.Column(db.String(255), nullable=True)

    reported_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(db.String(24), nullable=False, default=STATUS_REPORTED_PENDING, index=True)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cash_box_id = db.Column(db.Integer, db.ForeignKey("cash_boxes.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    reseller = db.relationship("Reseller", backref=db.backref("payments", lazy=True))
    reported_by = db.relationship("User", foreign_keys=[reported_by_id])
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reseller_id": self.reseller_id,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "note": self.note,
            "receipt_key": self.receipt_key,
            "reported_by_id": self.reported_by_id,
            "status": self.status,
            "reviewed_by_id": self.reviewed_by_id,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "cash_box_id": self.cash_box_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
