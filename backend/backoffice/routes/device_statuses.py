# Overview: Device status catalog endpoints.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN
from ..services import device_service

device_statuses_bp = Blueprint("device_statuses", __name__, url_prefix="/api/device-statuses")


@device_statuses_bp.get("")
@require_auth
def list_statuses_route():
    """Admins see the whole catalog; resellers only active, visible keys."""
    statuses = device_service.list_device_statuses(reseller_view=not g.current_user.is_admin)
    return jsonify({"statuses": [s.to_dict() for s in statuses]}), 200


@device_statuses_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_status_route():
    try:
        status = device_service.create_device_status(request.get_json(silent=True) or {})
        return jsonify({"status": status.to_dict()}), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create device status")
        return jsonify({"error": "Internal server error"}), 500


@device_statuses_bp.patch("/<key>")
@require_auth
@require_role(ROLE_ADMIN)
def update_status_route(key: str):
    try:
        status = device_service.update_device_status(key, request.get_json(silent=True) or {})
        return jsonify({"status": status.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update device status")
        return jsonify({"error": "Internal server error"}), 500
