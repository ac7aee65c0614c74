"""
Status codes shared by the account flows and their HTTP responses.

The names of VerifyStatusCode and LoginStatusCode members are what clients
receive; ValidationStatusCode values are the integers in field-error maps.
"""
from enum import Enum, IntEnum


class VerifyStatusCode(str, Enum):
    # The token can not be used, a new one can be requested
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    ACCOUNT_VERIFIED = "ACCOUNT_VERIFIED"
    ACCOUNT_ALREADY_VERIFIED = "ACCOUNT_ALREADY_VERIFIED"
    EMAIL_SENT = "EMAIL_SENT"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class LoginStatusCode(str, Enum):
    # Shared by "no such user" and "wrong password" so accounts can't be enumerated
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_NOT_VERIFIED = "USER_NOT_VERIFIED"
    LOGGED_OUT = "LOGGED_OUT"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SESSION = "INVALID_SESSION"


class ValidationStatusCode(IntEnum):
    VALID = 0
    TOO_SHORT = 1
    TOO_LONG = 2
    INVALID_FORMAT = 3
    ALREADY_EXISTS = 4
    MISSING = 5
