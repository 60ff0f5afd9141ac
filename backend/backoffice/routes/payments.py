# Overview: Payment reporting and admin review endpoints.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import current_reseller_id, require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN, ROLE_RESELLER
from ..pagination import paginate, parse_pagination
from ..services import payment_service
from ..validation import cents_from_payload, require_id

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _optional_id(data: dict, key: str) -> int | None:
    if data.get(key) in (None, ""):
        return None
    return require_id(data.get(key), key)


@payments_bp.get("")
@require_auth
def list_payments_route():
    """Resellers only see their own payments."""
    page = parse_pagination(request.args)
    scope = current_reseller_id()
    if scope is None:
        scope = request.args.get("reseller_id", type=int)
    query = payment_service.list_payments(reseller_id=scope, status=request.args.get("status") or None)
    rows, total = paginate(query, page)
    return jsonify({"payments": [p.to_dict() for p in rows], "meta": page.meta(total)}), 200


@payments_bp.post("/report")
@require_auth
@require_role(ROLE_ADMIN, ROLE_RESELLER)
def report_payment_route():
    """
    Request body:
    {
        "reseller_id": 2,          (resellers may omit it)
        "amount_cents": 50000,     (or "amount": "500.00")
        "currency": "USD",
        "note": "...",
        "receipt_key": "...",
        "cash_box_id": 1
    }

    Returns:
        201: payment in reported_pending
        400: validation error
        403: reseller reporting for someone else
        404: reseller or cash box not found
    """
    try:
        data = request.get_json(silent=True) or {}
        reseller_id = _optional_id(data, "reseller_id")
        if reseller_id is None and not g.current_user.is_admin:
            reseller_id = current_reseller_id()
        if reseller_id is None:
            return jsonify({"error": "reseller_id es obligatorio"}), 400

        payment = payment_service.report_payment(
            reseller_id=reseller_id,
            amount_cents=cents_from_payload(data),
            reported_by_id=g.current_user.id,
            currency=data.get("currency") or "USD",
            note=data.get("note"),
            receipt_key=data.get("receipt_key"),
            cash_box_id=_optional_id(data, "cash_box_id"),
        )
        return jsonify({"payment": payment.to_dict()}), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to report payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/confirm")
@require_auth
@require_role(ROLE_ADMIN)
def confirm_payment_route(payment_id: int):
    """Request body (optional): {"cash_box_id": 1}"""
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.confirm_payment(
            payment_id=payment_id,
            actor_id=g.current_user.id,
            cash_box_id=_optional_id(data, "cash_box_id"),
        )
        return jsonify({"payment": payment.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to confirm payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/reject")
@require_auth
@require_role(ROLE_ADMIN)
def reject_payment_route(payment_id: int):
    try:
        payment = payment_service.reject_payment(payment_id=payment_id, actor_id=g.current_user.id)
        return jsonify({"payment": payment.to_dict()}), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject payment")
        return jsonify({"error": "Internal server error"}), 500
