# Overview: Device state tracker and the admin-configurable status catalog.

"""
Device states are keys of the DeviceStatus catalog. The core drives
available -> consigned -> sold and the returned path; admins may also set
any active catalog key directly.

Every write validates the target key against a StatusCatalog loaded from
the database, so a typo can never create an orphan state.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Device, DeviceStatus
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, require_choice, validate_payload
from . import audit_service
from .concurrency import guarded_update, lock_for_update
from .post_commit import PostCommitEffects


STATE_AVAILABLE = "available"
STATE_CONSIGNED = "consigned"
STATE_SOLD = "sold"
STATE_RETURNED = "returned"

CONDITION_SEALED = "sealed"
VALID_CONDITIONS = ("sealed", "used", "technical_service")
VALID_SECTORS = ("office", "consignment", "orders", "reservations")

DEFAULT_STATUSES = [
    {"key": STATE_AVAILABLE, "name": "Disponible", "sector": "office", "is_sellable": True, "is_visible_for_reseller": True, "sort_order": 10},
    {"key": STATE_CONSIGNED, "name": "En consignación", "sector": "consignment", "is_sellable": False, "is_visible_for_reseller": True, "sort_order": 15},
    {"key": STATE_SOLD, "name": "Vendido", "sector": "office", "is_sellable": False, "is_visible_for_reseller": True, "sort_order": 20},
    {"key": STATE_RETURNED, "name": "Devuelto", "sector": "consignment", "is_sellable": False, "is_visible_for_reseller": False, "sort_order": 25},
    {"key": "pending_receive", "name": "Pend. recepción", "sector": "office", "is_sellable": False, "is_visible_for_reseller": False, "sort_order": 30},
    {"key": "pending_scan", "name": "Pend. escanear", "sector": "office", "is_sellable": False, "is_visible_for_reseller": False, "sort_order": 40},
    {"key": "in_technician", "name": "En técnico", "sector": "office", "is_sellable": False, "is_visible_for_reseller": False, "sort_order": 50},
]

DEVICE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "imei", "serial_number", "model", "memory", "color", "state",
        "condition", "technician_id", "cost_cents", "purchase_order_item_id",
    },
    required_on_create={"imei", "model"},
)

STATUS_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "key", "name", "description", "sector", "is_sellable",
        "is_visible_for_reseller", "sort_order", "is_active",
    },
    required_on_create={"key", "name"},
)

STATUS_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=STATUS_CREATE_POLICY.writable_fields - {"key"},
)


# =============================================================================
# STATUS CATALOG
# =============================================================================

@dataclass(frozen=True)
class StatusCatalog:
    """Snapshot of the active status keys, loaded once per operation."""
    active_keys: frozenset[str]

    def __contains__(self, key: str) -> bool:
        return key in self.active_keys

    def require(self, key: str) -> str:
        if not isinstance(key, str) or key not in self.active_keys:
            raise ValidationError(f"Estado inválido o inactivo: {key}")
        return key


def load_status_catalog() -> StatusCatalog:
    keys = db.session.query(DeviceStatus.key).filter(DeviceStatus.is_active.is_(True)).all()
    return StatusCatalog(active_keys=frozenset(k for (k,) in keys))


def find_status(key: str) -> DeviceStatus | None:
    return db.session.query(DeviceStatus).filter_by(key=key).first()


def list_device_statuses(*, reseller_view: bool = False) -> list[DeviceStatus]:
    query = db.session.query(DeviceStatus)
    if reseller_view:
        query = query.filter(DeviceStatus.is_active.is_(True), DeviceStatus.is_visible_for_reseller.is_(True))
    return query.order_by(DeviceStatus.sort_order, DeviceStatus.name).all()


def _check_status_rules(patch: dict) -> None:
    if "key" in patch and len(patch["key"]) < 2:
        raise ValidationError("key debe tener al menos 2 caracteres")
    if "name" in patch and len(patch["name"]) < 2:
        raise ValidationError("name debe tener al menos 2 caracteres")
    if "sector" in patch:
        require_choice(patch["sector"], VALID_SECTORS, "sector")
    if "sort_order" in patch and not 0 <= patch["sort_order"] <= 9999:
        raise ValidationError("sort_order debe estar entre 0 y 9999")


def create_device_status(data: dict) -> DeviceStatus:
    patch = validate_payload(model=DeviceStatus, payload=data, policy=STATUS_CREATE_POLICY, partial=False)
    _check_status_rules(patch)
    if find_status(patch["key"]):
        raise ConflictError(f"Ya existe el estado {patch['key']}")

    status = DeviceStatus(**patch)
    db.session.add(status)
    db.session.commit()
    return status


def update_device_status(key: str, data: dict) -> DeviceStatus:
    patch = validate_payload(model=DeviceStatus, payload=data, policy=STATUS_UPDATE_POLICY, partial=True)
    _check_status_rules(patch)
    status = find_status(key)
    if not status:
        raise NotFoundError("Estado no encontrado")

    for field_name, value in patch.items():
        setattr(status, field_name, value)
    db.session.commit()
    return status


def seed_device_statuses() -> list[str]:
    """Upsert the built-in catalog rows; safe to run repeatedly."""
    for row in DEFAULT_STATUSES:
        status = find_status(row["key"])
        if status is None:
            status = DeviceStatus(key=row["key"])
            db.session.add(status)
        for field_name, value in row.items():
            setattr(status, field_name, value)
        status.is_active = True
    db.session.commit()
    return [row["key"] for row in DEFAULT_STATUSES]


# =============================================================================
# DEVICES
# =============================================================================

def get_device(device_id: int) -> Device:
    device = db.session.get(Device, device_id)
    if not device:
        raise NotFoundError("Equipo no encontrado")
    return device


def list_devices(*, state: str | None = None, reseller_id: int | None = None):
    """Query (not list) so routes can paginate it."""
    query = db.session.query(Device)
    if state:
        query = query.filter(Device.state == state)
    if reseller_id is not None:
        query = query.filter(Device.reseller_id == reseller_id)
    return query.order_by(Device.id.desc())


def create_device(data: dict, *, actor_id: int | None = None) -> Device:
    """
    Manual device entry.

    Raises:
        ValidationError: bad payload, unknown/inactive state, bad condition
        ConflictError: IMEI already registered
    """
    patch = validate_payload(model=Device, payload=data, policy=DEVICE_CREATE_POLICY, partial=False)
    patch.setdefault("state", STATE_AVAILABLE)
    patch.setdefault("condition", CONDITION_SEALED)
    load_status_catalog().require(patch["state"])
    require_choice(patch["condition"], VALID_CONDITIONS, "condition")
    if patch.get("cost_cents") is not None and patch["cost_cents"] < 0:
        raise ValidationError("cost_cents debe ser mayor o igual a 0")
    if db.session.query(Device.id).filter_by(imei=patch["imei"]).first():
        raise ConflictError("Ya existe un equipo con ese IMEI.")

    device = Device(**patch)
    db.session.add(device)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Ya existe un equipo con ese IMEI.")

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="device.created",
        entity_type="device",
        entity_id=device.id,
        meta={"imei": device.imei},
    )
    effects.run()
    return device


def set_state(device_id: int, new_state: str, *, actor_id: int | None = None) -> Device:
    """
    Admin override: write any active catalog key, no transition rules.
    """
    catalog = load_status_catalog()
    catalog.require(new_state)

    device = lock_for_update(db.session.query(Device).filter_by(id=device_id)).first()
    if not device:
        raise NotFoundError("Equipo no encontrado")

    previous = device.state
    device.state = new_state
    db.session.commit()
    current_app.logger.info("Device %s state %s -> %s (override)", device_id, previous, new_state)

    effects = PostCommitEffects()
    effects.add(
        "audit",
        audit_service.write_audit_log,
        actor_id=actor_id,
        action="device.state.updated",
        entity_type="device",
        entity_id=device_id,
        meta={"state": new_state, "previous_state": previous},
    )
    effects.run()
    return device


# The transitions below run inside the caller's transaction and never commit.

def assign_to_consignment(device_id: int, reseller_id: int, *, catalog: StatusCatalog | None = None) -> Device:
    """
    available -> consigned, linking the reseller.

    Guarded UPDATE: a device taken by a concurrent request no longer
    matches state == available and the call fails instead of double-assigning.
    """
    (catalog or load_status_catalog()).require(STATE_CONSIGNED)
    updated = guarded_update(
        db.session.query(Device).filter(Device.id == device_id, Device.state == STATE_AVAILABLE),
        {
            "state": STATE_CONSIGNED,
            "reseller_id": reseller_id,
            "updated_at": utcnow(),
            "version_id": Device.version_id + 1,
        },
    )
    if updated != 1:
        raise InvalidStateError("El equipo no está disponible para consignación")
    return db.session.get(Device, device_id, populate_existing=True)


def mark_sold(device_id: int, *, catalog: StatusCatalog | None = None) -> Device:
    """Any state -> sold. The consignment engine checks the preconditions."""
    (catalog or load_status_catalog()).require(STATE_SOLD)
    device = get_device(device_id)
    device.state = STATE_SOLD
    db.session.flush()
    return device


def mark_returned(device_id: int, *, catalog: StatusCatalog | None = None) -> Device:
    """Back to the office: state returned, no reseller attached."""
    (catalog or load_status_catalog()).require(STATE_RETURNED)
    device = get_device(device_id)
    device.state = STATE_RETURNED
    device.reseller_id = None
    db.session.flush()
    return device
