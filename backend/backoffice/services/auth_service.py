# Overview: Password hashing and credential checks for admin and reseller accounts.

"""
Passwords are hashed with bcrypt (cost factor BCRYPT_LOG_ROUNDS, 12 by
default) and never stored or logged in clear. Emails are normalized to
lowercase before every lookup.
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN, VALID_ROLES
from ..time_utils import utcnow
from ..validation import require_choice, require_text

MIN_PASSWORD_LENGTH = 8


def normalize_email(email) -> str:
    email = require_text(email, "email", max_length=255).lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("email inválido")
    return email


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check; a malformed stored hash is a mismatch."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def email_taken(email: str) -> bool:
    return db.session.query(User.id).filter_by(email=email).first() is not None


def build_user(*, email: str, name: str, password: str, role: str) -> User:
    """Validated, unsaved User. Callers add it to their own transaction."""
    email = normalize_email(email)
    name = require_text(name, "name", max_length=128)
    require_choice(role, VALID_ROLES, "role")
    if email_taken(email):
        raise ConflictError("Ya existe un usuario con ese email")
    return User(email=email, name=name, role=role, password_hash=hash_password(password))


def create_admin(*, email: str, name: str, password: str) -> User:
    user = build_user(email=email, name=name, password=password, role=ROLE_ADMIN)
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active user matching the credentials, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None
    user = (
        db.session.query(User)
        .filter(User.email == email.strip().lower(), User.is_active.is_(True))
        .first()
    )
    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
