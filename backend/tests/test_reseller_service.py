"""
Reseller lifecycle tests.

Verifies:
- Account and reseller row are created together; duplicate email is a conflict
- Profile fields are validated (coordinates range, unknown fields)
- Delete cascades dependents and frees the reseller's devices
"""

import pytest

from backoffice.errors import ConflictError, NotFoundError, ValidationError
from backoffice.models import (
    AuditLog,
    Consignment,
    ConsignmentMovement,
    DebtLedgerEntry,
    Device,
    Payment,
    Reseller,
    SessionToken,
    User,
)
from backoffice.services import consignment_service, payment_service, reseller_service, session_service


class TestCreate:

    def test_creates_user_and_reseller(self, db_session, reseller):
        user = db_session.get(User, reseller.user_id)

        assert user.role == "reseller"
        assert user.email == "rita@test.local"
        assert reseller.city == "Córdoba"
        assert db_session.query(AuditLog).filter_by(action="reseller.created", entity_id=reseller.id).count() == 1

    def test_email_is_normalized_and_unique(self, db_session, reseller):
        with pytest.raises(ConflictError):
            reseller_service.create_reseller(name="Copia", email="  RITA@test.local ", password="Password123!")
        assert db_session.query(Reseller).count() == 1

    @pytest.mark.parametrize("kwargs", [
        {"password": "short"},
        {"email": "not-an-email"},
        {"latitude": 91.0},
        {"longitude": -180.5},
        {"favourite_color": "red"},
    ])
    def test_validation(self, db_session, kwargs):
        payload = {"name": "Nuevo", "email": "nuevo@test.local", "password": "Password123!", **kwargs}

        with pytest.raises(ValidationError):
            reseller_service.create_reseller(**payload)
        assert db_session.query(User).count() == 0


class TestProfile:

    def test_update_profile(self, db_session, reseller):
        updated = reseller_service.update_reseller_profile(
            reseller.id, {"company_name": "Rita SRL", "latitude": -31.42, "longitude": -64.18},
        )

        assert updated.company_name == "Rita SRL"
        assert updated.latitude == pytest.approx(-31.42)

    def test_update_rejects_user_fields(self, db_session, reseller):
        with pytest.raises(ValidationError):
            reseller_service.update_reseller_profile(reseller.id, {"user_id": 1})

    def test_profile_view(self, db_session, device, reseller, admin_user):
        consignment_service.assign_consignment(device_id=device.id, reseller_id=reseller.id, assigned_by_id=admin_user.id)
        payment_service.report_payment(reseller_id=reseller.id, amount_cents=1000, reported_by_id=reseller.user_id)

        profile = reseller_service.get_reseller_profile(reseller.id)

        assert profile["reseller"]["name"] == "Rita Reseller"
        assert profile["balance_cents"] == 80000
        assert len(profile["consignments"]) == 1
        assert len(profile["payments"]) == 1
        assert len(profile["debt_entries"]) == 1

    def test_unknown_reseller(self, db_session):
        with pytest.raises(NotFoundError):
            reseller_service.get_reseller_profile(9999)


class TestDelete:

    def test_cascade_frees_devices_and_removes_dependents(self, db_session, device, reseller, other_reseller, admin_user):
        reseller_id, user_id, device_id = reseller.id, reseller.user_id, device.id
        consignment_service.assign_consignment(device_id=device_id, reseller_id=reseller_id, assigned_by_id=admin_user.id)
        payment_service.report_payment(reseller_id=reseller_id, amount_cents=1000, reported_by_id=user_id)
        session_service.create_session(user_id)

        reseller_service.delete_reseller(reseller_id, actor_id=admin_user.id)
        db_session.expire_all()

        freed = db_session.get(Device, device_id)
        assert freed.state == "available"
        assert freed.reseller_id is None
        assert db_session.get(Reseller, reseller_id) is None
        assert db_session.get(User, user_id) is None
        for model in (Consignment, ConsignmentMovement, Payment, DebtLedgerEntry):
            assert db_session.query(model).count() == 0
        assert db_session.query(SessionToken).filter_by(user_id=user_id).count() == 0
        assert db_session.get(Reseller, other_reseller.id) is not None
        assert db_session.query(AuditLog).filter_by(action="reseller.deleted", entity_id=reseller_id).count() == 1

    def test_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            reseller_service.delete_reseller(9999)
