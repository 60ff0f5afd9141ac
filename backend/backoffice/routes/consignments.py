# Overview: Consignment endpoints; assign, report sale, return and list.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import current_reseller_id, require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN, ROLE_RESELLER
from ..pagination import paginate, parse_pagination
from ..services import consignment_service
from ..validation import cents_from_payload, optional_cents_from_payload, require_id

consignments_bp = Blueprint("consignments", __name__, url_prefix="/api/consignments")


@consignments_bp.get("")
@require_auth
def list_consignments_route():
    page = parse_pagination(request.args)
    scope = current_reseller_id()
    if scope is None:
        scope = request.args.get("reseller_id", type=int)
    query = consignment_service.list_consignments(reseller_id=scope, status=request.args.get("status") or None)
    rows, total = paginate(query, page)
    return jsonify({"consignments": [c.to_dict() for c in rows], "meta": page.meta(total)}), 200


@consignments_bp.get("/<int:consignment_id>")
@require_auth
def get_consignment_route(consignment_id: int):
    try:
        consignment = consignment_service.get_consignment(consignment_id)
        scope = current_reseller_id()
        if scope is not None and consignment.reseller_id != scope:
            return jsonify({"error": "No autorizado para esta consignación"}), 403
        return jsonify({"consignment": consignment.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code


@consignments_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def assign_consignment_route():
    """
    Request body:
    {
        "device_id": 1,
        "reseller_id": 2,
        "payment_method": "consignacion" | "usdt" | "transferencia" | "dolar_billete",
        "sale_price_cents": 90000,     (or "sale_price": "900.00")
        "amount_paid_cents": 30000,    (or "amount_paid": 300)
        "note": "..."
    }

    Returns:
        201: consignment with its movements
        400: validation or state error (device not available, already consigned)
        404: device or reseller not found
    """
    try:
        data = request.get_json(silent=True) or {}
        consignment = consignment_service.assign_consignment(
            device_id=require_id(data.get("device_id"), "device_id"),
            reseller_id=require_id(data.get("reseller_id"), "reseller_id"),
            assigned_by_id=g.current_user.id,
            note=data.get("note"),
            payment_method=data.get("payment_method"),
            sale_price_cents=optional_cents_from_payload(data, cents_key="sale_price_cents", amount_key="sale_price"),
            amount_paid_cents=optional_cents_from_payload(data, cents_key="amount_paid_cents", amount_key="amount_paid") or 0,
        )
        return jsonify({"consignment": consignment.to_dict()}), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign consignment")
        return jsonify({"error": "Internal server error"}), 500


@consignments_bp.post("/<int:consignment_id>/sold")
@require_auth
@require_role(ROLE_ADMIN, ROLE_RESELLER)
def mark_sold_route(consignment_id: int):
    """Request body: {"sale_amount_cents": 95000 (or "sale_amount"), "note": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        consignment = consignment_service.mark_consignment_sold(
            consignment_id=consignment_id,
            actor_id=g.current_user.id,
            sale_amount_cents=cents_from_payload(data, cents_key="sale_amount_cents", amount_key="sale_amount"),
            note=data.get("note"),
        )
        return jsonify({"consignment": consignment.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark consignment sold")
        return jsonify({"error": "Internal server error"}), 500


@consignments_bp.post("/<int:consignment_id>/return")
@require_auth
@require_role(ROLE_ADMIN)
def return_consignment_route(consignment_id: int):
    try:
        data = request.get_json(silent=True) or {}
        consignment = consignment_service.return_consignment(
            consignment_id=consignment_id,
            actor_id=g.current_user.id,
            note=data.get("note"),
        )
        return jsonify({"consignment": consignment.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to return consignment")
        return jsonify({"error": "Internal server error"}), 500
