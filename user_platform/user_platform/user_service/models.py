from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime
from datetime import datetime
from .db import Base
from sqlalchemy.orm import relationship
import uuid


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(80), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    # Holds the password hash, never the plaintext
    password = Column(String(255), nullable=False)
    # Rotated on every password change; embedded in refresh tokens
    password_identifier = Column(String(100), nullable=False)
    image_url = Column(String(100), nullable=True)
    verified = Column(Boolean, default=False, nullable=False)
    role = Column(String(20), default="user", nullable=False)

    verify_token = relationship(
        "EmailVerifyToken", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    reset_token = relationship(
        "PasswordResetToken", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    sessions = relationship("SessionToken", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, verified={self.verified})>"


class EmailVerifyToken(Base):
    __tablename__ = "email_verify_tokens"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String(32), unique=True, index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    user = relationship("User", back_populates="verify_token")


class SessionToken(Base):
    __tablename__ = "session_tokens"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String(32), unique=True, index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String(32), unique=True, index=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="reset_token")
