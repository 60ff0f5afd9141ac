from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Consignment(db.Model):
    """
    One device handed to one reseller pending sale.

    LIFECYCLE: active -> sold | returned. At most one active row per device,
    backed by a partial unique index.
    """
    __tablename__ = "consignments"
    __table_args__ = (
        db.Index(
            "uq_consignments_active_device",
            "device_id",
            unique=True,
            sqlite_where=db.text("status = 'active'"),
            postgresql_where=db.text("status = 'active'"),
        ),
        db.Index("ix_consignments_reseller_status", "reseller_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=False, index=True)
    reseller_id = db.Column(db.Integer, db.ForeignKey("resellers.id"), nullable=False, index=True)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, sold, returned
    payment_method = db.Column(db.String(32), nullable=False, default="consignacion")
    sale_price_cents = db.Column(db.Integer, nullable=True)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    device = db.relationship("Device", backref=db.backref("consignments", lazy=True))
    reseller = db.relationship("Reseller", backref=db.backref("consignments", lazy=True))
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_id])
    movements = db.relationship(
        "ConsignmentMovement",
        backref="consignment",
        lazy=True,
        order_by="ConsignmentMovement.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_movements: bool = True) -> dict:
        data = {
            "id": self.id,
            "device_id": self.device_id,
            "reseller_id": self.reseller_id,
            "assigned_by_id": self.assigned_by_id,
            "status": self.status,
            "payment_method": self.payment_method,
            "sale_price_cents": self.sale_price_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "assigned_at": to_utc_z(self.assigned_at),
            "closed_at": to_utc_z(self.closed_at),
            "version_id": self.version_id,
            "device": self.device.to_dict() if self.device else None,
        }
        if include_movements:
            data["movements"] = [m.to_dict() for m in self.movements]
        return data


class ConsignmentMovement(db.Model):
    """Append-only audit trail of a consignment (assigned, sold, returned)."""
    __tablename__ = "consignment_movements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    consignment_id = db.Column(db.Integer, db.ForeignKey("consignments.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False)
    note = db.Column(db.String(500), nullable=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "consignment_id": self.consignment_id,
            "movement_type": self.movement_type,
            "note": self.note,
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
        }
