# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Users, passwords and refresh tokens.

Passwords are bcrypt-hashed with BCRYPT_ROUNDS. A refresh token is single-use:
every refresh stores a new hash and expiry on the user row. Access tokens
live in session_service.
"""

import re
from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_CASHIER, ROLES
from ..validation import ConflictError, NotFoundError, ValidationError
from inventory_api.time_utils import utcnow
from .session_service import generate_token, hash_token, revoke_all_user_sessions


MIN_PASSWORD_LENGTH = 8

PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "uppercase letter"),
    (re.compile(r"[a-z]"), "lowercase letter"),
    (re.compile(r"\d"), "digit"),
    (re.compile(r"[^A-Za-z0-9\s]"), "special character"),
)


class PasswordValidationError(Exception):
    """Password is missing or too weak (maps to 400)."""


class AuthError(Exception):
    """Raised for failed authentication (maps to 401)."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, what in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password must contain at least one {what}")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash with BCRYPT_ROUNDS."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    username: str,
    email: str,
    password: str,
    full_name: str,
    role: str = ROLE_CASHIER,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: missing fields or unknown role
        ConflictError: username or email already taken
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    full_name = (full_name or "").strip()

    if not username or not email or not full_name:
        raise ValidationError("username, email and full_name are required")
    if "@" not in email:
        raise ValidationError("email is not a valid address")
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User %s created with role %s", user.username, user.role)
    return user


def authenticate(username: str, password: str) -> User:
    """
    Authenticate with username (or email) and password.

    Updates last_login_at on success.

    Raises AuthError with a generic message so callers cannot tell which
    half of the credentials was wrong.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
    ).first()

    if not user or not user.is_active or not verify_password(password, user.password_hash):
        current_app.logger.warning("Failed login for %r", username)
        raise AuthError("Invalid username or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def issue_refresh_token(user: User) -> str:
    """
    Generate a refresh token and store its hash on the user.

    Replaces any previous refresh token. Returns the plaintext token.
    """
    plaintext = generate_token()
    days = current_app.config.get("REFRESH_TOKEN_DAYS", 7)
    user.refresh_token_hash = hash_token(plaintext)
    user.refresh_token_expires_at = utcnow() + timedelta(days=days)
    db.session.commit()
    return plaintext


def rotate_refresh_token(refresh_token: str) -> tuple[User, str]:
    """
    Exchange a valid refresh token for a new one.

    Raises AuthError if the token is unknown, expired, or the user is inactive.
    """
    if not refresh_token:
        raise AuthError("Refresh token is required")

    user = db.session.query(User).filter_by(refresh_token_hash=hash_token(refresh_token)).first()
    if not user or not user.is_active:
        raise AuthError("Invalid refresh token")
    if not user.refresh_token_expires_at or user.refresh_token_expires_at < utcnow():
        user.refresh_token_hash = None
        user.refresh_token_expires_at = None
        db.session.commit()
        raise AuthError("Refresh token expired")

    return user, issue_refresh_token(user)


def revoke_refresh_token(user_id: int) -> None:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")
    user.refresh_token_hash = None
    user.refresh_token_expires_at = None
    db.session.commit()


def change_password(*, user_id: int, current_password: str, new_password: str) -> User:
    """
    Change password and revoke every access and refresh token of the user.

    Raises:
        AuthError: current password wrong
        PasswordValidationError: new password too weak
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")

    if not verify_password(current_password, user.password_hash):
        raise AuthError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    user.refresh_token_hash = None
    user.refresh_token_expires_at = None
    db.session.commit()

    revoke_all_user_sessions(user.id, reason="Password changed")
    current_app.logger.info("Password changed for user %s", user.username)
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()
