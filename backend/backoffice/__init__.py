# backend/backoffice/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before the extensions bind their engines
    if config:
        app.config.update(config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.resellers import resellers_bp
    from .routes.devices import devices_bp
    from .routes.device_statuses import device_statuses_bp
    from .routes.consignments import consignments_bp
    from .routes.payments import payments_bp
    from .routes.debts import debts_bp
    from .routes.cashboxes import cashboxes_bp
    from .routes.notifications import notifications_bp
    from .routes.chat import chat_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(resellers_bp)
    app.register_blueprint(devices_bp)
    app.register_blueprint(device_statuses_bp)
    app.register_blueprint(consignments_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(debts_bp)
    app.register_blueprint(cashboxes_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(chat_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
