"""
User Router - registration, verification, login sessions and password reset.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Form, Header, HTTPException, status
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.orm import Session
import jwt

from ..db import get_db
from ..auth import decode_token, ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE
from ..errors import PasswordMismatch
from ..mailer import Mailer, get_mailer
from ..schemas import (
    UserCreate,
    UserLogin,
    UserResponse,
    LoginResponse,
    RefreshResponse,
    ResendRequest,
    PasswordResetRequest,
    StatusResponse,
)
from ..statuscodes import LoginStatusCode, VerifyStatusCode
from ..templates import render_password_form
from ..validation import PASSWORD_MIN, PASSWORD_MAX
from .. import accounts

router = APIRouter(prefix="/user", tags=["User"])
logger = logging.getLogger(__name__)


def _bearer_claims(authorization: Optional[str], expected_type: str) -> dict:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return decode_token(token, expected_type)
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected %s token: %s", expected_type, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def get_access_claims(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> dict:
    return _bearer_claims(authorization, ACCESS_TOKEN_TYPE)


def get_refresh_claims(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> dict:
    return _bearer_claims(authorization, REFRESH_TOKEN_TYPE)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db), mailer: Mailer = Depends(get_mailer)):
    return accounts.register(db, mailer, payload.username, payload.email, payload.password)


@router.post("/login", response_model=LoginResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    return accounts.login(db, credentials.username, credentials.email, credentials.password)


@router.get("/profile", response_model=UserResponse)
def get_profile(claims: dict = Depends(get_access_claims), db: Session = Depends(get_db)):
    return accounts.profile(db, claims["sub"])


@router.get("/refresh", response_model=RefreshResponse)
def refresh(claims: dict = Depends(get_refresh_claims), db: Session = Depends(get_db)):
    return accounts.refresh(db, claims)


@router.get("/logout", response_model=StatusResponse)
def logout(claims: dict = Depends(get_refresh_claims), db: Session = Depends(get_db)):
    accounts.logout(db, claims)
    return StatusResponse(message=LoginStatusCode.LOGGED_OUT.value)


@router.get("/verify/{token}", response_model=StatusResponse)
def verify(token: str, db: Session = Depends(get_db)):
    accounts.verify(db, token)
    return StatusResponse(message=VerifyStatusCode.ACCOUNT_VERIFIED.value)


@router.post("/resend", response_model=StatusResponse)
def resend(payload: ResendRequest, db: Session = Depends(get_db), mailer: Mailer = Depends(get_mailer)):
    accounts.resend(db, mailer, payload.email)
    return StatusResponse(message=VerifyStatusCode.EMAIL_SENT.value)


@router.post("/send-password-reset", response_model=StatusResponse)
def send_password_reset(
    payload: PasswordResetRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    accounts.request_password_reset(db, mailer, payload.username, payload.email)
    return StatusResponse(message=VerifyStatusCode.EMAIL_SENT.value)


@router.get("/reset-password/{token}", response_class=HTMLResponse)
def show_password_form(token: str):
    """Page linked from the password reset mail."""
    return render_password_form(
        token=token,
        min_password_length=PASSWORD_MIN,
        max_password_length=PASSWORD_MAX,
    )


@router.post("/reset-password")
def reset_password(
    token: Optional[str] = Form(default=None),
    password: Optional[str] = Form(default=None),
    password_again: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
):
    try:
        accounts.reset_password(db, token, password, password_again)
    except PasswordMismatch as exc:
        page = render_password_form(
            token=exc.token,
            error="Password fields do not match",
            min_password_length=PASSWORD_MIN,
            max_password_length=PASSWORD_MAX,
        )
        return HTMLResponse(page, status_code=exc.status_code)
    return PlainTextResponse("Password Changed")
