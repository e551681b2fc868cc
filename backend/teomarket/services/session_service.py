# Overview: Bearer token issue/validation for API identity.

"""
Session tokens identify the caller of the API.

Tokens are random 32-byte hex strings handed to the client once; only the
SHA-256 hash is stored. There is no login flow here: tokens are issued by
the `users issue-token` CLI command or by tests.
"""

import secrets
import hashlib
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(days=30)


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int, lifetime: timedelta | None = None) -> tuple[SessionToken, str]:
    """
    Create a session for user. Returns (session_record, plaintext_token).

    Raises ValueError if the user does not exist or is inactive.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + (lifetime or SESSION_ABSOLUTE_TIMEOUT),
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> User | None:
    """
    Return the active user for token, or None when the token is unknown,
    expired, revoked, or belongs to a deactivated user.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        revoked_at=None,
    ).first()

    if not session:
        return None
    if session.expires_at < utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None
    return user


def revoke_session(token: str) -> bool:
    """Returns True if a live session was revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        revoked_at=None,
    ).first()
    if not session:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True
