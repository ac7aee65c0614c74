"""
Persistence for users and their tokens.

Functions here only stage changes on the given session (add/flush/delete);
committing or rolling back is the caller's decision. Uniqueness is enforced
by the database constraints, token consumption by DELETE row counts.
New token values are checked against the stored ones before insert.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from .models import User, EmailVerifyToken, SessionToken, PasswordResetToken
from .auth import generate_token, VERIFY_TOKEN_BYTES, SESSION_TOKEN_BYTES, RESET_TOKEN_BYTES

# Fresh values drawn per new token before giving up
TOKEN_ATTEMPTS = 5


def _unused_token(db: Session, model, byte_length: int) -> str:
    """
    Draw a random token value not yet stored in the given token table.

    Raises:
        RuntimeError: If every attempt collided with an existing token
    """
    for _ in range(TOKEN_ATTEMPTS):
        value = generate_token(byte_length)
        if db.query(model.id).filter(model.token == value).first() is None:
            return value
    raise RuntimeError(f"No unused {model.__tablename__} value after {TOKEN_ATTEMPTS} attempts")


# ---------------- Users ----------------

def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def find_user(db: Session, username: Optional[str] = None, email: Optional[str] = None) -> Optional[User]:
    """Find a user by email OR username, whichever identifiers are given."""
    conditions = []
    if email is not None:
        conditions.append(User.email == email)
    if username is not None:
        conditions.append(User.username == username)
    if not conditions:
        return None
    return db.query(User).filter(or_(*conditions)).first()


def username_taken(db: Session, username: str) -> bool:
    return db.query(User.id).filter(User.username == username).first() is not None


def email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def add_user(db: Session, user: User) -> User:
    """
    Stage a new user and flush it so the UNIQUE constraints are checked now.

    Raises:
        sqlalchemy.exc.IntegrityError: If username or email already exist
    """
    db.add(user)
    db.flush()
    return user


# ---------------- Email verify tokens ----------------

def get_verify_token(db: Session, token: str) -> Optional[EmailVerifyToken]:
    return (
        db.query(EmailVerifyToken)
        .options(joinedload(EmailVerifyToken.user))
        .filter(EmailVerifyToken.token == token)
        .first()
    )


def get_verify_token_for_user(db: Session, user_id: str) -> Optional[EmailVerifyToken]:
    return db.query(EmailVerifyToken).filter(EmailVerifyToken.user_id == user_id).first()


def create_verify_token(db: Session, user: User) -> EmailVerifyToken:
    value = _unused_token(db, EmailVerifyToken, VERIFY_TOKEN_BYTES)
    token = EmailVerifyToken(token=value, user_id=user.id)
    db.add(token)
    db.flush()
    return token


def consume_verify_token(db: Session, token: str) -> Optional[str]:
    """
    Delete a verify token and return the id of the user it belonged to.

    Only the caller whose DELETE removed the row gets the user id back, so
    two concurrent redemptions of the same token cannot both succeed.
    """
    row = db.query(EmailVerifyToken.user_id).filter(EmailVerifyToken.token == token).first()
    if row is None:
        return None
    deleted = (
        db.query(EmailVerifyToken)
        .filter(EmailVerifyToken.token == token)
        .delete(synchronize_session=False)
    )
    if deleted != 1:
        return None
    return row.user_id


def mark_verified(db: Session, user_id: str) -> int:
    return (
        db.query(User)
        .filter(User.id == user_id)
        .update({User.verified: True}, synchronize_session=False)
    )


# ---------------- Login sessions ----------------

def create_session(db: Session, user: User) -> SessionToken:
    value = _unused_token(db, SessionToken, SESSION_TOKEN_BYTES)
    session_token = SessionToken(token=value, user_id=user.id)
    db.add(session_token)
    db.flush()
    return session_token


def get_session(db: Session, token: str, user_id: str) -> Optional[SessionToken]:
    return (
        db.query(SessionToken)
        .filter(SessionToken.token == token, SessionToken.user_id == user_id)
        .first()
    )


def delete_session(db: Session, token: str, user_id: str) -> bool:
    deleted = (
        db.query(SessionToken)
        .filter(SessionToken.token == token, SessionToken.user_id == user_id)
        .delete(synchronize_session=False)
    )
    return deleted == 1


def prune_sessions(db: Session, user_id: str, older_than: datetime) -> int:
    """Delete the user's sessions created before older_than; returns the count."""
    return (
        db.query(SessionToken)
        .filter(SessionToken.user_id == user_id, SessionToken.created_at < older_than)
        .delete(synchronize_session=False)
    )


# ---------------- Password reset tokens ----------------

def get_reset_token(db: Session, token: str) -> Optional[PasswordResetToken]:
    return (
        db.query(PasswordResetToken)
        .options(joinedload(PasswordResetToken.user))
        .filter(PasswordResetToken.token == token)
        .first()
    )


def get_reset_token_for_user(db: Session, user_id: str) -> Optional[PasswordResetToken]:
    return db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user_id).first()


def create_reset_token(db: Session, user: User) -> PasswordResetToken:
    value = _unused_token(db, PasswordResetToken, RESET_TOKEN_BYTES)
    token = PasswordResetToken(token=value, user_id=user.id)
    db.add(token)
    db.flush()
    return token


def delete_reset_token(db: Session, token: str) -> bool:
    deleted = (
        db.query(PasswordResetToken)
        .filter(PasswordResetToken.token == token)
        .delete(synchronize_session=False)
    )
    return deleted == 1
