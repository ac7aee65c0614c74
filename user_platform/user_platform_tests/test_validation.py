"""
Unit tests for per-context field validation.
"""
import pytest

from user_platform.user_platform.user_service.validation import (
    validate,
    validate_password,
    has_errors,
    REGISTER,
    LOGIN,
    RESEND,
    SEND_RESET,
)
from user_platform.user_platform.user_service.statuscodes import ValidationStatusCode as Code
from user_platform.user_platform.user_service.models import User
from user_platform.user_platform.user_service.auth import hash_password


@pytest.fixture
def existing_user(db_session):
    user = User(
        username="Potato",
        email="potato@test.com",
        password=hash_password("s3cur3"),
        password_identifier="0011223344",
    )
    db_session.add(user)
    db_session.commit()
    return user


def test_register_valid_candidate(db_session):
    errors = validate(
        {"username": "Potato", "email": "potato@test.com", "password": "s3cur3"}, REGISTER, db_session
    )
    assert errors == {"username": 0, "email": 0, "password": 0}
    assert not has_errors(errors)


def test_register_reports_every_failing_field(db_session):
    errors = validate({"username": "ab", "email": "a@b.c", "password": "1234"}, REGISTER, db_session)
    assert errors == {"username": Code.TOO_SHORT, "email": Code.TOO_SHORT, "password": Code.TOO_SHORT}
    assert has_errors(errors)


def test_register_too_long_fields(db_session):
    errors = validate(
        {"username": "u" * 81, "email": "e" * 95 + "@x.com", "password": "p" * 61}, REGISTER, db_session
    )
    assert errors == {"username": Code.TOO_LONG, "email": Code.TOO_LONG, "password": Code.TOO_LONG}


def test_register_invalid_email_format(db_session):
    errors = validate(
        {"username": "Potato", "email": "not-an-email-address", "password": "s3cur3"}, REGISTER, db_session
    )
    assert errors["email"] == Code.INVALID_FORMAT


def test_register_missing_fields(db_session):
    errors = validate({}, REGISTER, db_session)
    assert errors == {"username": Code.MISSING, "email": Code.MISSING, "password": Code.MISSING}


def test_register_already_exists(db_session, existing_user):
    errors = validate(
        {"username": "Potato", "email": "potato@test.com", "password": "s3cur3"}, REGISTER, db_session
    )
    assert errors == {"username": Code.ALREADY_EXISTS, "email": Code.ALREADY_EXISTS, "password": 0}


def test_first_failing_rule_wins(db_session, existing_user):
    # Too short and malformed: length is checked before format
    errors = validate({"username": "Potato", "email": "x@y", "password": "s3cur3"}, REGISTER, db_session)
    assert errors["email"] == Code.TOO_SHORT
    assert errors["username"] == Code.ALREADY_EXISTS


def test_register_requires_a_session():
    with pytest.raises(ValueError):
        validate({"username": "Potato"}, REGISTER)


def test_unknown_context_is_rejected():
    with pytest.raises(ValueError):
        validate({}, "delete-account")


def test_login_accepts_email_without_username():
    errors = validate({"email": "potato@test.com", "password": "s3cur3"}, LOGIN)
    assert errors == {"username": 0, "email": 0, "password": 0}


def test_login_accepts_username_without_email():
    errors = validate({"username": "Potato", "password": "s3cur3"}, LOGIN)
    assert errors == {"username": 0, "email": 0, "password": 0}


def test_login_without_any_identifier():
    errors = validate({"password": "s3cur3"}, LOGIN)
    assert errors == {"username": Code.MISSING, "email": Code.MISSING, "password": 0}


def test_login_does_not_check_uniqueness(existing_user):
    errors = validate({"username": "Potato", "password": "s3cur3"}, LOGIN)
    assert not has_errors(errors)


def test_resend_only_checks_email():
    assert validate({"email": "potato@test.com"}, RESEND) == {"email": 0}
    assert validate({}, RESEND) == {"email": Code.MISSING}
    assert validate({"email": "short@x"}, RESEND) == {"email": Code.TOO_SHORT}


def test_send_reset_has_no_password_rule():
    errors = validate({"username": "Potato"}, SEND_RESET)
    assert errors == {"username": 0, "email": 0}
    assert "password" not in errors


def test_validate_password_alone():
    assert validate_password("s3cur3") == {"password": 0}
    assert validate_password("abc") == {"password": Code.TOO_SHORT}
    assert validate_password("a" * 61) == {"password": Code.TOO_LONG}
    assert validate_password(None) == {"password": Code.MISSING}
