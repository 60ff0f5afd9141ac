# Overview: Login, logout and current-user endpoints.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, session_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login():
    """
    Request body: {"email": "...", "password": "..."}

    Returns 200 with {"token", "user"}; 401 on bad credentials.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.authenticate(data.get("email"), data.get("password"))
        if not user:
            return jsonify({"error": "Credenciales inválidas"}), 401

        _, token = session_service.create_session(user.id)
        current_app.logger.info("User %s logged in", user.id)
        return jsonify({"token": token, "user": user.to_dict()}), 200
    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout():
    session_service.revoke_session(g.session_token)
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@require_auth
def me():
    return jsonify({"user": g.current_user.to_dict()}), 200
