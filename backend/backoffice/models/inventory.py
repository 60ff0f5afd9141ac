from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class DeviceStatus(db.Model):
    """
    Admin-configurable catalog of device states.

    Device.state is a soft reference to DeviceStatus.key: it is validated
    against active catalog rows at write time, not by a foreign key.
    """
    __tablename__ = "device_statuses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    sector = db.Column(db.String(32), nullable=False, default="office")  # office, consignment, orders, reservations
    is_sellable = db.Column(db.Boolean, nullable=False, default=False)
    is_visible_for_reseller = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=100)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "sector": self.sector,
            "is_sellable": self.is_sellable,
            "is_visible_for_reseller": self.is_visible_for_reseller,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
        }


class Device(db.Model):
    """
    One physical phone, identified by IMEI.

    The core only drives available -> consigned -> sold and the returned
    path; any other state key comes from admin overrides.
    """
    __tablename__ = "devices"
    __table_args__ = (
        db.Index("ix_devices_state_reseller", "state", "reseller_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    imei = db.Column(db.String(32), nullable=False, unique=True, index=True)
    serial_number = db.Column(db.String(64), nullable=True)
    model = db.Column(db.String(128), nullable=False)
    memory = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(64), nullable=True)

    state = db.Column(db.String(64), nullable=False, default="available", index=True)
    condition = db.Column(db.String(32), nullable=False, default="sealed")  # sealed, used, technical_service

    reseller_id = db.Column(db.Integer, db.ForeignKey("resellers.id"), nullable=True, index=True)
    technician_id = db.Column(db.Integer, nullable=True)
    cost_cents = db.Column(db.Integer, nullable=True)
    purchase_order_item_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    reseller = db.relationship("Reseller", backref=db.backref("devices", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "imei": self.imei,
            "serial_number": self.serial_number,
            "model": self.model,
            "memory": self.memory,
            "color": self.color,
            "state": self.state,
            "condition": self.condition,
            "reseller_id": self.reseller_id,
            "technician_id": self.technician_id,
            "cost_cents": self.cost_cents,
            "purchase_order_item_id": self.purchase_order_item_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
