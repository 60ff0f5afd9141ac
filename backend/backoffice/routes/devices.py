# Overview: Device listing, manual entry and admin state override.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import current_reseller_id, require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN
from ..pagination import paginate, parse_pagination
from ..services import device_service

devices_bp = Blueprint("devices", __name__, url_prefix="/api/devices")


@devices_bp.get("")
@require_auth
def list_devices_route():
    """
    Query params: state, reseller_id (admin only), page, page_size.
    Resellers only see devices assigned to them.
    """
    page = parse_pagination(request.args)
    scope = current_reseller_id()
    if scope is None:
        scope = request.args.get("reseller_id", type=int)
    query = device_service.list_devices(state=request.args.get("state") or None, reseller_id=scope)
    rows, total = paginate(query, page)
    return jsonify({"devices": [d.to_dict() for d in rows], "meta": page.meta(total)}), 200


@devices_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_device_route():
    try:
        device = device_service.create_device(request.get_json(silent=True) or {}, actor_id=g.current_user.id)
        return jsonify({"device": device.to_dict()}), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create device")
        return jsonify({"error": "Internal server error"}), 500


@devices_bp.patch("/<int:device_id>/state")
@require_auth
@require_role(ROLE_ADMIN)
def set_device_state_route(device_id: int):
    """Request body: {"state": "<catalog key>"}"""
    try:
        data = request.get_json(silent=True) or {}
        device = device_service.set_state(device_id, data.get("state"), actor_id=g.current_user.id)
        return jsonify({"device": device.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update device state")
        return jsonify({"error": "Internal server error"}), 500
