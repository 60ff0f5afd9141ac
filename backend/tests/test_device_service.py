"""
Device state tracker and status catalog tests.
"""

import pytest

from conftest import make_device

from backoffice.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from backoffice.models import AuditLog, Device, DeviceStatus
from backoffice.services import device_service


class TestStatusCatalog:

    def test_seed_is_idempotent(self, db_session):
        device_service.seed_device_statuses()
        device_service.seed_device_statuses()

        keys = {s.key for s in db_session.query(DeviceStatus)}
        assert {"available", "consigned", "sold", "returned"} <= keys
        assert db_session.query(DeviceStatus).count() == len(device_service.DEFAULT_STATUSES)

    def test_require_rejects_unknown_and_inactive(self, db_session, catalog):
        device_service.update_device_status("in_technician", {"is_active": False})
        fresh = device_service.load_status_catalog()

        assert fresh.require("available") == "available"
        with pytest.raises(ValidationError):
            fresh.require("in_technician")
        with pytest.raises(ValidationError):
            fresh.require("availabel")

    def test_reseller_view_hides_internal_statuses(self, db_session, catalog):
        visible = {s.key for s in device_service.list_device_statuses(reseller_view=True)}
        assert "available" in visible
        assert "pending_scan" not in visible

    def test_create_status_and_duplicate_key(self, db_session, catalog):
        status = device_service.create_device_status({"key": "reserved", "name": "Reservado", "sector": "reservations"})
        assert status.is_active is True

        with pytest.raises(ConflictError):
            device_service.create_device_status({"key": "reserved", "name": "Otro"})

    @pytest.mark.parametrize("payload", [
        {"key": "x", "name": "Corto"},
        {"key": "ok_key", "name": "Nombre", "sector": "warehouse"},
        {"key": "ok_key", "name": "Nombre", "sort_order": 10000},
        {"key": "ok_key", "name": "Nombre", "unknown": 1},
    ])
    def test_create_status_validation(self, db_session, catalog, payload):
        with pytest.raises(ValidationError):
            device_service.create_device_status(payload)

    def test_update_unknown_status(self, db_session, catalog):
        with pytest.raises(NotFoundError):
            device_service.update_device_status("nope", {"name": "Nada"})


class TestCreateDevice:

    def test_defaults_to_available_and_sealed(self, db_session, catalog, admin_user):
        device = device_service.create_device({"imei": "351111111111111", "model": "Galaxy S23"}, actor_id=admin_user.id)

        assert device.state == "available"
        assert device.condition == "sealed"
        assert db_session.query(AuditLog).filter_by(action="device.created", entity_id=device.id).count() == 1

    def test_duplicate_imei_is_conflict(self, db_session, catalog, device):
        with pytest.raises(ConflictError):
            device_service.create_device({"imei": device.imei, "model": "Otro"})

    @pytest.mark.parametrize("payload", [
        {"imei": "352222222222222", "model": "X", "state": "flying"},
        {"imei": "352222222222222", "model": "X", "condition": "broken"},
        {"imei": "352222222222222", "model": "X", "cost_cents": -1},
        {"model": "X"},
    ])
    def test_validation(self, db_session, catalog, payload):
        with pytest.raises(ValidationError):
            device_service.create_device(payload)
        assert db_session.query(Device).count() == 0


class TestTransitions:

    def test_set_state_accepts_any_active_key(self, db_session, device, admin_user):
        updated = device_service.set_state(device.id, "in_technician", actor_id=admin_user.id)

        assert updated.state == "in_technician"
        audit = db_session.query(AuditLog).filter_by(action="device.state.updated").one()
        assert audit.meta == {"state": "in_technician", "previous_state": "available"}

    def test_set_state_rejects_unknown_key(self, db_session, device):
        with pytest.raises(ValidationError):
            device_service.set_state(device.id, "lost_in_mail")
        assert db_session.get(Device, device.id).state == "available"

    def test_set_state_unknown_device(self, db_session, catalog):
        with pytest.raises(NotFoundError):
            device_service.set_state(9999, "sold")

    def test_assign_requires_available(self, db_session, catalog, reseller):
        device = make_device("353333333333333", state="sold")

        with pytest.raises(InvalidStateError):
            device_service.assign_to_consignment(device.id, reseller.id)
        db_session.rollback()

        assert db_session.get(Device, device.id).state == "sold"

    def test_assign_mark_sold_and_return(self, db_session, device, reseller):
        assigned = device_service.assign_to_consignment(device.id, reseller.id)
        assert (assigned.state, assigned.reseller_id) == ("consigned", reseller.id)

        sold = device_service.mark_sold(device.id)
        assert sold.state == "sold"

        returned = device_service.mark_returned(device.id)
        assert (returned.state, returned.reseller_id) == ("returned", None)
        db_session.commit()
