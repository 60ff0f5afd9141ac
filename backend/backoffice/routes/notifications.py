# Overview: Per-user notification inbox.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import notification_service

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    limit = max(1, min(request.args.get("limit", 50, type=int), 200))
    items = notification_service.list_notifications(g.current_user.id, limit=limit)
    return jsonify({
        "notifications": [n.to_dict() for n in items],
        "unread": sum(1 for n in items if not n.is_read),
    }), 200


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    if not notification_service.mark_read(notification_id, g.current_user.id):
        return jsonify({"error": "Notificación no encontrada"}), 404
    return jsonify({"ok": True}), 200
