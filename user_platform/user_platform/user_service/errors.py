"""
Error taxonomy for the account flows.

Every failure branch of a flow raises one of these; the application turns
them into HTTP responses in a single exception handler.
"""
from typing import Dict, Optional
from fastapi import status


class AccountError(Exception):
    """Base class: an explicit HTTP status plus a status-code name."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: str, status_code: Optional[int] = None):
        super().__init__(code)
        self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_content(self):
        return {"detail": self.code}


class ValidationFailed(AccountError):
    """One or more fields failed validation; carries the per-field code map."""

    def __init__(self, errors: Dict[str, int]):
        super().__init__("VALIDATION_FAILED")
        self.errors = errors

    def to_content(self):
        return self.errors


class NotFoundError(AccountError):
    """User or token lookup came back empty."""


class AuthError(AccountError):
    """Invalid credentials, token or session."""


class StateConflictError(AccountError):
    """The account is in the wrong state for the request."""


class ExpiredError(AccountError):
    """Token is past its time-to-live."""


class DownstreamError(AccountError):
    """A collaborator (the mail gateway) failed; not retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class PasswordMismatch(AccountError):
    """Password and its confirmation differ on the reset form."""

    def __init__(self, token: str):
        super().__init__("PASSWORD_MISMATCH")
        self.token = token
