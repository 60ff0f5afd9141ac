# Overview: Debt ledger endpoints; balances and manual admin adjustments.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import current_reseller_id, require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import ROLE_ADMIN
from ..services import ledger_service
from ..validation import cents_from_payload, require_id

debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("/summary")
@require_auth
def summary_route():
    """
    Admins: every reseller with its balance.
    Resellers: own balance plus the last 50 entries.
    """
    reseller_id = current_reseller_id()
    if reseller_id is None:
        return jsonify({"items": ledger_service.debt_summary()}), 200
    if g.current_user.reseller is None:
        return jsonify({"error": "Perfil de revendedor no encontrado"}), 400

    entries = ledger_service.list_debt_entries(reseller_id, limit=50)
    return jsonify({
        "balance_cents": ledger_service.get_debt_balance_cents(reseller_id),
        "entries": [e.to_dict() for e in entries],
    }), 200


@debts_bp.post("/entries")
@require_auth
@require_role(ROLE_ADMIN)
def create_entry_route():
    """
    Request body:
    {
        "reseller_id": 2,
        "entry_type": "debit" | "credit",
        "amount_cents": 10000,     (or "amount": "100.00")
        "reason": "Saldo inicial"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = ledger_service.record_manual_adjustment(
            reseller_id=require_id(data.get("reseller_id"), "reseller_id"),
            entry_type=data.get("entry_type"),
            amount_cents=cents_from_payload(data),
            reason=data.get("reason"),
            actor_id=g.current_user.id,
        )
        return jsonify({
            "entry": entry.to_dict(),
            "balance_cents": ledger_service.get_debt_balance_cents(entry.reseller_id),
        }), 201
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record debt entry")
        return jsonify({"error": "Internal server error"}), 500
