# Overview: Cash box endpoints (admin only).

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN
from ..services import cash_service
from ..validation import cents_from_payload, require_id

cashboxes_bp = Blueprint("cashboxes", __name__, url_prefix="/api/cashboxes")


@cashboxes_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_cash_boxes_route():
    return jsonify({"cash_boxes": cash_service.list_cash_boxes()}), 200


@cashboxes_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_cash_box_route():
    """Request body: {"name": "Caja USD", "currency": "USD", "type": "general"}"""
    try:
        data = request.get_json(silent=True) or {}
        box = cash_service.create_cash_box(
            name=data.get("name"),
            currency=data.get("currency") or "USD",
            type=data.get("type") or "general",
        )
        return jsonify({"cash_box": {**box.to_dict(), "balance_cents": 0}}), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create cash box")
        return jsonify({"error": "Internal server error"}), 500


@cashboxes_bp.get("/<int:cash_box_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_cash_box_route(cash_box_id: int):
    try:
        limit = max(1, min(request.args.get("limit", 100, type=int), 500))
        return jsonify({"cash_box": cash_service.get_cash_box(cash_box_id, movement_limit=limit)}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code


@cashboxes_bp.post("/movements")
@require_auth
@require_role(ROLE_ADMIN)
def create_movement_route():
    """
    Request body:
    {
        "cash_box_id": 1,
        "type": "credit" | "debit",
        "amount_cents": 2500,      (or "amount": "25.00")
        "description": "Retiro para viáticos"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        movement = cash_service.record_manual_movement(
            cash_box_id=require_id(data.get("cash_box_id"), "cash_box_id"),
            type=data.get("type"),
            amount_cents=cents_from_payload(data),
            description=data.get("description"),
        )
        return jsonify({
            "movement": movement.to_dict(),
            "balance_cents": cash_service.get_cash_box_balance_cents(movement.cash_box_id),
        }), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500
