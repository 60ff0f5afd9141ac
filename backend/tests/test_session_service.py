"""
Session token and password tests.
"""

from datetime import timedelta

from backoffice.models import SessionToken
from backoffice.services import auth_service, session_service
from backoffice.time_utils import utcnow


def test_only_the_hash_is_stored(db_session, admin_user):
    session, token = session_service.create_session(admin_user.id)

    assert session.token_hash == session_service.hash_token(token)
    assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0
    assert session_service.validate_session(token).id == admin_user.id


def test_expired_session_is_rejected(db_session, admin_user):
    session, token = session_service.create_session(admin_user.id)
    session.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    assert session_service.validate_session(token) is None


def test_deactivated_user_loses_sessions(db_session, admin_user):
    session, token = session_service.create_session(admin_user.id)
    admin_user.is_active = False
    db_session.commit()

    assert session_service.validate_session(token) is None
    db_session.refresh(session)
    assert session.is_revoked is True


def test_revoke_is_idempotent(db_session, admin_user):
    _, token = session_service.create_session(admin_user.id)

    assert session_service.revoke_session(token) is True
    assert session_service.revoke_session(token) is False
    assert session_service.validate_session(token) is None


def test_password_hash_round_trip(app):
    hashed = auth_service.hash_password("Password123!")

    assert hashed != "Password123!"
    assert auth_service.verify_password("Password123!", hashed)
    assert not auth_service.verify_password("Password124!", hashed)
    assert not auth_service.verify_password("Password123!", "not-a-bcrypt-hash")
