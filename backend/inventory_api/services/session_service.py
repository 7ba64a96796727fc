# Overview: Service-layer operations for access tokens; encapsulates business logic and database work.

"""
Access tokens for the API.

The client holds an opaque 64-char hex token; the database only keeps its
SHA-256 digest. A token dies when it passes SESSION_ABSOLUTE_HOURS, when it
sits unused longer than SESSION_IDLE_HOURS, when its user is deactivated,
or when it is revoked (logout, password change).
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from inventory_api.time_utils import utcnow

REASON_LOGOUT = "User logout"
REASON_IDLE = "Idle timeout"
REASON_DEACTIVATED = "User account deactivated"
REASON_REVOKE_ALL = "Revoke all sessions"

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    # Tokens carry 256 bits of entropy, so a plain digest is enough here.
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def _live_by_token(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _mark_revoked(record: SessionToken, reason: str, when=None) -> None:
    record.is_revoked = True
    record.revoked_at = when or utcnow()
    record.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Issue a new access token for an active user.

    Returns (record, plaintext); only the plaintext is ever handed to the client.
    """
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise ValueError("User not found or inactive")

    token = generate_token()
    issued = utcnow()
    record = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + _hours("SESSION_ABSOLUTE_HOURS", 24),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()
    return record, token


def validate_session(token: str) -> SessionToken | None:
    """
    Resolve a bearer token to its live record and bump last_used_at.

    Idle and deactivated-user tokens are revoked as a side effect, so they
    stay dead even if the timeout setting is later raised.
    """
    record = _live_by_token(token)
    if record is None:
        return None

    now = utcnow()
    if record.expires_at < now:
        return None

    reason = None
    if now - record.last_used_at > _hours("SESSION_IDLE_HOURS", 2):
        reason = REASON_IDLE
    elif record.user is None or not record.user.is_active:
        reason = REASON_DEACTIVATED

    if reason:
        _mark_revoked(record, reason, now)
        db.session.commit()
        current_app.logger.info("Access token %s revoked: %s", record.id, reason)
        return None

    record.last_used_at = now
    db.session.commit()
    return record


def revoke_session(token: str, reason: str = REASON_LOGOUT) -> bool:
    record = _live_by_token(token)
    if record is None:
        return False
    _mark_revoked(record, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = REASON_REVOKE_ALL) -> int:
    """Revoke every live token of a user; returns how many were revoked."""
    now = utcnow()
    records = (
        db.session.query(SessionToken)
        .filter(SessionToken.user_id == user_id, SessionToken.is_revoked.is_(False))
        .all()
    )
    for record in records:
        _mark_revoked(record, reason, now)
    db.session.commit()
    return len(records)


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """Delete dead tokens issued more than `older_than_days` ago."""
    now = utcnow()
    dead = db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True))
    deleted = (
        db.session.query(SessionToken)
        .filter(dead, SessionToken.created_at < now - timedelta(days=older_than_days))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
