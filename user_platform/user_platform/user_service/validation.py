"""
Field validation for the account flows.

Each operation validates its input in a context (register, login, resend,
send-reset). Rules are an ordered list per field; every field is checked
independently and reports the code of the first rule it fails.
"""
from typing import Callable, Dict, List, Optional, Tuple
from email_validator import validate_email, EmailNotValidError
from sqlalchemy.orm import Session

from .statuscodes import ValidationStatusCode as Code
from . import store

REGISTER = "register"
LOGIN = "login"
RESEND = "resend"
SEND_RESET = "send-reset"
CONTEXTS = (REGISTER, LOGIN, RESEND, SEND_RESET)

USERNAME_MIN, USERNAME_MAX = 3, 80
EMAIL_MIN, EMAIL_MAX = 10, 100
PASSWORD_MIN, PASSWORD_MAX = 5, 60

# A rule returns True when the value passes
Rule = Tuple[Code, Callable[[str], bool]]


def _min_length(n: int) -> Callable[[str], bool]:
    return lambda value: len(value) >= n


def _max_length(n: int) -> Callable[[str], bool]:
    return lambda value: len(value) <= n


def is_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _username_rules(context: str, db: Optional[Session]) -> List[Rule]:
    rules = [
        (Code.TOO_SHORT, _min_length(USERNAME_MIN)),
        (Code.TOO_LONG, _max_length(USERNAME_MAX)),
    ]
    if context == REGISTER:
        rules.append((Code.ALREADY_EXISTS, lambda value: not store.username_taken(db, value)))
    return rules


def _email_rules(context: str, db: Optional[Session]) -> List[Rule]:
    rules = [
        (Code.TOO_SHORT, _min_length(EMAIL_MIN)),
        (Code.TOO_LONG, _max_length(EMAIL_MAX)),
        (Code.INVALID_FORMAT, is_email),
    ]
    if context == REGISTER:
        rules.append((Code.ALREADY_EXISTS, lambda value: not store.email_taken(db, value)))
    return rules


def _password_rules() -> List[Rule]:
    return [
        (Code.TOO_SHORT, _min_length(PASSWORD_MIN)),
        (Code.TOO_LONG, _max_length(PASSWORD_MAX)),
    ]


def _check(value: Optional[str], rules: List[Rule]) -> Code:
    if value is None:
        return Code.MISSING
    for code, passes in rules:
        if not passes(value):
            return code
    return Code.VALID


def validate(candidate: Dict[str, Optional[str]], context: str, db: Optional[Session] = None) -> Dict[str, int]:
    """
    Validate the identifying fields of a request.

    Args:
        candidate: Mapping with any of "username", "email", "password"
        context: One of register, login, resend, send-reset
        db: Session used for uniqueness checks (register context only)

    Returns:
        Mapping of every field checked in this context to its code
        (0 when the field is valid)
    """
    if context not in CONTEXTS:
        raise ValueError(f"Unknown validation context '{context}'")
    if context == REGISTER and db is None:
        raise ValueError("Uniqueness checks need a database session")

    username = candidate.get("username")
    email = candidate.get("email")
    password = candidate.get("password")
    result: Dict[str, int] = {}

    if context == REGISTER:
        result["username"] = _check(username, _username_rules(context, db))
        result["email"] = _check(email, _email_rules(context, db))
    elif context == RESEND:
        result["email"] = _check(email, _email_rules(context, db))
    else:
        # login / send-reset: either identifier will do
        if username is not None or email is None:
            result["username"] = _check(username, _username_rules(context, db))
        else:
            result["username"] = Code.VALID
        if email is not None or username is None:
            result["email"] = _check(email, _email_rules(context, db))
        else:
            result["email"] = Code.VALID

    if context in (REGISTER, LOGIN):
        result["password"] = _check(password, _password_rules())

    return {field: int(code) for field, code in result.items()}


def validate_password(password: Optional[str]) -> Dict[str, int]:
    """Apply the password rule on its own (used by the reset form)."""
    return {"password": int(_check(password, _password_rules()))}


def has_errors(errors: Dict[str, int]) -> bool:
    return any(code != Code.VALID for code in errors.values())
