"""
Account lifecycle: registration, verification, login sessions and password reset.

Every operation receives the database session (and the mailer where it sends
mail) explicitly. Failure branches raise the errors in ``errors.py`` in a
fixed order; the first one that applies wins.
"""
from datetime import datetime, timedelta
from typing import Dict, Optional
import logging

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import (
    hash_password,
    verify_password,
    password_needs_rehash,
    generate_token,
    create_access_token,
    create_refresh_token,
    PASSWORD_IDENTIFIER_BYTES,
)
from .config import settings
from .errors import (
    AuthError,
    DownstreamError,
    ExpiredError,
    NotFoundError,
    PasswordMismatch,
    StateConflictError,
    ValidationFailed,
)
from .mailer import Mailer, MailerError
from .models import User, SessionToken, PasswordResetToken
from .statuscodes import LoginStatusCode, VerifyStatusCode, ValidationStatusCode
from . import store
from . import validation

logger = logging.getLogger(__name__)


def _send_or_rollback(db: Session, mailer: Mailer, template: str, user: User, variables: Dict) -> None:
    """Send a mail; on failure undo everything staged in this request."""
    user_id = user.id
    try:
        mailer.send(template, user.email, variables)
    except MailerError as e:
        db.rollback()
        logger.error("[Mail] Send failed: template=%s user_id=%s error=%s", template, user_id, e)
        raise DownstreamError(VerifyStatusCode.INTERNAL_SERVER_ERROR.value) from e


def _conflicting_fields(db: Session, username: str, email: str) -> Dict[str, int]:
    return {
        "username": int(ValidationStatusCode.ALREADY_EXISTS if store.username_taken(db, username) else ValidationStatusCode.VALID),
        "email": int(ValidationStatusCode.ALREADY_EXISTS if store.email_taken(db, email) else ValidationStatusCode.VALID),
        "password": int(ValidationStatusCode.VALID),
    }


# ---------------- Registration & verification ----------------

def register(db: Session, mailer: Mailer, username: Optional[str], email: Optional[str], password: Optional[str]) -> User:
    errors = validation.validate(
        {"username": username, "email": email, "password": password}, validation.REGISTER, db
    )
    if validation.has_errors(errors):
        raise ValidationFailed(errors)

    user = User(
        username=username,
        email=email,
        password=hash_password(password),
        password_identifier=generate_token(PASSWORD_IDENTIFIER_BYTES),
    )
    try:
        store.add_user(db, user)
    except IntegrityError:
        # Lost a race against a concurrent registration
        db.rollback()
        conflicts = _conflicting_fields(db, username, email)
        if not validation.has_errors(conflicts):
            raise
        logger.warning("[Register] Uniqueness conflict at insert: username=%s", username)
        raise ValidationFailed(conflicts)

    verify_token = store.create_verify_token(db, user)
    _send_or_rollback(db, mailer, "register", user, {
        "uname": user.username,
        "token": verify_token.token,
        "burl": settings.BASE_URL,
    })
    db.commit()
    db.refresh(user)

    logger.info("[Register] New user: user_id=%s username=%s", user.id, user.username)
    return user


def verify(db: Session, token: str) -> None:
    user_id = store.consume_verify_token(db, token)
    if user_id is None:
        db.rollback()
        raise NotFoundError(VerifyStatusCode.TOKEN_NOT_FOUND.value)

    store.mark_verified(db, user_id)
    db.commit()
    logger.info("[Verify] Account verified: user_id=%s", user_id)


def resend(db: Session, mailer: Mailer, email: Optional[str]) -> None:
    errors = validation.validate({"email": email}, validation.RESEND)
    if validation.has_errors(errors):
        raise ValidationFailed(errors)

    user = store.get_user_by_email(db, email)
    if not user:
        raise NotFoundError(LoginStatusCode.USER_NOT_FOUND.value)
    if user.verified:
        raise StateConflictError(VerifyStatusCode.ACCOUNT_ALREADY_VERIFIED.value)

    verify_token = store.get_verify_token_for_user(db, user.id)
    if verify_token is None:
        verify_token = store.create_verify_token(db, user)

    _send_or_rollback(db, mailer, "register", user, {
        "uname": user.username,
        "token": verify_token.token,
        "burl": settings.BASE_URL,
    })
    db.commit()
    logger.info("[Verify] Verification mail resent: user_id=%s", user.id)


# ---------------- Login sessions ----------------

def login(db: Session, username: Optional[str], email: Optional[str], password: Optional[str]) -> Dict[str, str]:
    """
    Open a new login session.

    Returns:
        Dict with a short-lived access "token" and a long-lived "refresh_token"
    """
    errors = validation.validate(
        {"username": username, "email": email, "password": password}, validation.LOGIN
    )
    if validation.has_errors(errors):
        raise ValidationFailed(errors)

    user = store.find_user(db, username=username, email=email)
    if not user or not verify_password(password, user.password):
        logger.warning("[Login] Failed login: username=%s email=%s", username, email)
        raise AuthError(LoginStatusCode.INVALID_CREDENTIALS.value)
    if not user.verified:
        raise AuthError(LoginStatusCode.USER_NOT_VERIFIED.value, status.HTTP_401_UNAUTHORIZED)

    if password_needs_rehash(user.password):
        user.password = hash_password(password)
        logger.info("[Login] Password rehashed: user_id=%s", user.id)

    # Sessions older than the refresh lifetime can no longer be used
    store.prune_sessions(db, user.id, datetime.utcnow() - timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    session = store.create_session(db, user)
    db.commit()

    logger.info("[Login] Successful login: user_id=%s username=%s", user.id, user.username)
    return {
        "token": create_access_token(user.id, user.role),
        "refresh_token": create_refresh_token(user.id, session.token, user.password_identifier),
    }


def profile(db: Session, user_id: str) -> User:
    user = store.get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError(LoginStatusCode.USER_NOT_FOUND.value)
    return user


def _check_refresh_claims(db: Session, claims: Dict) -> SessionToken:
    user = store.get_user_by_id(db, claims.get("sub"))
    if not user:
        raise NotFoundError(LoginStatusCode.USER_NOT_FOUND.value)
    if claims.get("pwId") != user.password_identifier:
        # Password changed since this refresh token was issued
        raise AuthError(LoginStatusCode.INVALID_TOKEN.value, status.HTTP_401_UNAUTHORIZED)

    session = store.get_session(db, claims.get("session"), user.id)
    if not session:
        raise AuthError(LoginStatusCode.INVALID_SESSION.value)
    return session


def refresh(db: Session, claims: Dict) -> Dict[str, str]:
    session = _check_refresh_claims(db, claims)
    user = session.user
    if not user.verified:
        raise AuthError(LoginStatusCode.USER_NOT_VERIFIED.value, status.HTTP_401_UNAUTHORIZED)
    return {"token": create_access_token(user.id, user.role)}


def logout(db: Session, claims: Dict) -> None:
    session = _check_refresh_claims(db, claims)
    user_id = session.user_id
    if not store.delete_session(db, session.token, user_id):
        db.rollback()
        raise AuthError(LoginStatusCode.INVALID_SESSION.value)
    db.commit()
    logger.info("[Logout] Session closed: user_id=%s", user_id)


# ---------------- Password reset ----------------

def _reset_token_expired(reset_token: PasswordResetToken) -> bool:
    expires_at = reset_token.created_at + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    return expires_at < datetime.utcnow()


def request_password_reset(db: Session, mailer: Mailer, username: Optional[str], email: Optional[str]) -> None:
    errors = validation.validate({"username": username, "email": email}, validation.SEND_RESET)
    if validation.has_errors(errors):
        raise ValidationFailed(errors)

    user = store.find_user(db, username=username, email=email)
    if not user:
        raise NotFoundError(LoginStatusCode.USER_NOT_FOUND.value)
    if not user.verified:
        raise StateConflictError(LoginStatusCode.USER_NOT_VERIFIED.value)

    reset_token = store.get_reset_token_for_user(db, user.id)
    if reset_token is not None and _reset_token_expired(reset_token):
        store.delete_reset_token(db, reset_token.token)
        reset_token = None
    if reset_token is None:
        reset_token = store.create_reset_token(db, user)

    _send_or_rollback(db, mailer, "password-reset", user, {
        "uname": user.username,
        "token": reset_token.token,
        "burl": settings.BASE_URL,
        "expire_min": settings.RESET_TOKEN_EXPIRE_MINUTES,
    })
    db.commit()
    logger.info("[Reset] Password reset mail sent: user_id=%s", user.id)


def reset_password(db: Session, token: Optional[str], password: Optional[str], password_again: Optional[str]) -> None:
    reset_token = store.get_reset_token(db, token) if token else None
    if not reset_token:
        raise NotFoundError(VerifyStatusCode.TOKEN_NOT_FOUND.value)

    if _reset_token_expired(reset_token):
        store.delete_reset_token(db, token)
        db.commit()
        raise ExpiredError(VerifyStatusCode.TOKEN_EXPIRED.value)

    if password != password_again:
        raise PasswordMismatch(token)

    errors = validation.validate_password(password)
    if validation.has_errors(errors):
        raise ValidationFailed(errors)

    user = reset_token.user
    if not store.delete_reset_token(db, token):
        # Redeemed by a concurrent request
        db.rollback()
        raise NotFoundError(VerifyStatusCode.TOKEN_NOT_FOUND.value)

    user.password = hash_password(password)
    # Invalidates every refresh token issued before this change
    user.password_identifier = generate_token(PASSWORD_IDENTIFIER_BYTES)
    db.commit()
    logger.info("[Reset] Password changed: user_id=%s", user.id)
