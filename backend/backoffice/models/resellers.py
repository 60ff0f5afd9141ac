from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Reseller(db.Model):
    """
    Business partner receiving devices on consignment.

    Exactly one User per reseller (user_id is unique). Rows are only removed
    by the cascading delete in reseller_service.
    """
    __tablename__ = "resellers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    segment = db.Column(db.String(64), nullable=True)
    company_name = db.Column(db.String(128), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    birthday = db.Column(db.DateTime(timezone=True), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("reseller", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.user.name if self.user else None,
            "email": self.user.email if self.user else None,
            "segment": self.segment,
            "company_name": self.company_name,
            "city": self.city,
            "address": self.address,
            "birthday": to_utc_z(self.birthday),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "created_at": to_utc_z(self.created_at),
        }


class StockRequest(db.Model):
    """Reseller asking the office for a model it does not hold."""
    __tablename__ = "stock_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    reseller_id = db.Column(db.Integer, db.ForeignKey("resellers.id"), nullable=False, index=True)
    model = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    note = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="open")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reseller_id": self.reseller_id,
            "model": self.model,
            "quantity": self.quantity,
            "note": self.note,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
