# Overview: Admin endpoints for the reseller lifecycle.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN
from ..pagination import paginate, parse_pagination
from ..services import reseller_service

resellers_bp = Blueprint("resellers", __name__, url_prefix="/api/resellers")


@resellers_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_resellers_route():
    page = parse_pagination(request.args)
    rows, total = paginate(reseller_service.list_resellers(), page)
    return jsonify({"resellers": [r.to_dict() for r in rows], "meta": page.meta(total)}), 200


@resellers_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_reseller_route():
    """
    Request body:
    {
        "name": "Juan Pérez",
        "email": "juan@example.com",
        "password": "at-least-8",
        "segment": "...", "company_name": "...", "city": "...",
        "latitude": -34.6, "longitude": -58.4
    }
    """
    try:
        data = dict(request.get_json(silent=True) or {})
        name = data.pop("name", None)
        email = data.pop("email", None)
        password = data.pop("password", None)
        reseller = reseller_service.create_reseller(
            name=name,
            email=email,
            password=password,
            actor_id=g.current_user.id,
            **data,
        )
        return jsonify({"reseller": reseller.to_dict()}), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create reseller")
        return jsonify({"error": "Internal server error"}), 500


@resellers_bp.get("/<int:reseller_id>/profile")
@require_auth
@require_role(ROLE_ADMIN)
def get_profile_route(reseller_id: int):
    try:
        return jsonify(reseller_service.get_reseller_profile(reseller_id)), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code


@resellers_bp.patch("/<int:reseller_id>/profile")
@require_auth
@require_role(ROLE_ADMIN)
def update_profile_route(reseller_id: int):
    try:
        reseller = reseller_service.update_reseller_profile(reseller_id, request.get_json(silent=True) or {})
        return jsonify({"reseller": reseller.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update reseller profile")
        return jsonify({"error": "Internal server error"}), 500


@resellers_bp.delete("/<int:reseller_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_reseller_route(reseller_id: int):
    try:
        reseller_service.delete_reseller(reseller_id, actor_id=g.current_user.id)
        return "", 204
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete reseller")
        return jsonify({"error": "Internal server error"}), 500
