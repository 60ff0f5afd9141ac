# Overview: Direct conversations between the business and a reseller.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models import ChatMessage
from ..models.auth import ROLE_ADMIN
from ..extensions import db
from ..services import chat_service

chat_bp = Blueprint("chat", __name__, url_prefix="/api/chat")


@chat_bp.post("/dm/by-reseller/<int:reseller_id>")
@require_auth
@require_role(ROLE_ADMIN)
def open_dm_route(reseller_id: int):
    """Return the reseller DM with its latest 50 messages, creating it if needed."""
    try:
        conversation = chat_service.open_direct_conversation(reseller_id)
        messages = (
            db.session.query(ChatMessage)
            .filter_by(conversation_id=conversation.id)
            .order_by(ChatMessage.id.desc())
            .limit(50)
            .all()
        )
        return jsonify({
            "conversation": conversation.to_dict(),
            "messages": [m.to_dict() for m in reversed(messages)],
        }), 200
    except BackofficeError as e:
        return jsonify({"error": e.message}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open reseller conversation")
        return jsonify({"error": "Internal server error"}), 500
