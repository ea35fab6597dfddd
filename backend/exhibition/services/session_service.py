# Overview: Bearer session tokens: issue, validate, revoke and purge.

"""
Session Tokens

WHY: Every API call after login carries a bearer token. Validation is the
only place the caller's Principal (user id + role) is resolved, so the
invoice workflow never looks at credentials itself.

RULES:
- Tokens are 32 random bytes; only their SHA-256 digest is stored
- Absolute lifetime SESSION_ABSOLUTE_TIMEOUT_HOURS (default 24h)
- Idle lifetime SESSION_IDLE_TIMEOUT_MINUTES (default 2h); an idle token is revoked
- A deactivated user's tokens are revoked on next use
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import SessionToken, User
from .access_policy import Principal
from exhibition.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

# Revoked/expired rows are kept this long for auditing
SESSION_RETENTION = timedelta(days=30)


@dataclass
class SessionContext:
    user: User
    session: SessionToken
    principal: Principal


def _absolute_timeout() -> timedelta:
    hours = current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS")
    return timedelta(hours=hours) if hours else SESSION_ABSOLUTE_TIMEOUT


def _idle_timeout() -> timedelta:
    minutes = current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES")
    return timedelta(minutes=minutes) if minutes else SESSION_IDLE_TIMEOUT


def generate_token() -> str:
    """64 hex characters; handed to the client once and never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # High-entropy tokens do not need a slow hash
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Issue a session for `user_id`.

    Returns (session_record, plaintext_token).
    """
    if db.session.query(User.id).filter_by(id=user_id).first() is None:
        raise NotFoundError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its SessionContext, or None.

    A successful validation refreshes last_used_at.
    """
    now = utcnow()
    session = _find_live(token)

    if not session or session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=user,
        session=session,
        principal=Principal.for_user(user),
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns False when the token is unknown or already revoked."""
    session = _find_live(token)
    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    *,
    keep_token: str | None = None,
) -> int:
    """
    Revoke every live session of a user, optionally sparing the caller's own.

    WHY: Security response (password change). Forces re-authentication on
    every other device. Returns the number of sessions revoked.
    """
    query = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False)
    if keep_token:
        query = query.filter(SessionToken.token_hash != hash_token(keep_token))

    count = 0
    for session in query.all():
        _revoke(session, reason)
        count += 1

    db.session.commit()
    return count


def cleanup_expired_sessions() -> int:
    """Delete expired or revoked sessions created before the retention window."""
    now = utcnow()

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < now - SESSION_RETENTION
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
