"""
HTML rendering for outgoing mail and the password reset page.
"""
from html import escape
from typing import Any, Dict, Optional, Tuple


def _register(variables: Dict[str, Any]) -> Tuple[str, str]:
    verify_url = f"{variables['burl']}/user/verify/{variables['token']}"
    body = f"""
    <h2>Welcome, {escape(str(variables['uname']))}!</h2>
    <p>Please verify your email address by clicking the link below:</p>
    <p><a href="{escape(verify_url)}">Verify Email</a></p>
    <p>Your verification code is <b>{escape(str(variables['token']))}</b>.</p>
    """
    return "Verify your email", body


def _password_reset(variables: Dict[str, Any]) -> Tuple[str, str]:
    reset_url = f"{variables['burl']}/user/reset-password/{variables['token']}"
    body = f"""
    <h2>Password Reset Request</h2>
    <p>Hi {escape(str(variables['uname']))},</p>
    <p>Click the link below to reset your password:</p>
    <p><a href="{escape(reset_url)}">Reset Password</a></p>
    <p>This link expires in {int(variables['expire_min'])} minutes.</p>
    <p>If you didn't request this, please ignore this email.</p>
    """
    return "Reset your password", body


EMAIL_TEMPLATES = {
    "register": _register,
    "password-reset": _password_reset,
}


def render_email(template: str, variables: Dict[str, Any]) -> Tuple[str, str]:
    """
    Render a mail template.

    Returns:
        Tuple of (subject, html body)

    Raises:
        KeyError: If the template or one of its variables is unknown
    """
    return EMAIL_TEMPLATES[template](variables)


def render_password_form(
    token: str,
    min_password_length: int,
    max_password_length: int,
    error: Optional[str] = None,
) -> str:
    error_html = f'<p class="error">{escape(error)}</p>' if error else ""
    return f"""<!DOCTYPE html>
<html>
<head><title>Reset password</title></head>
<body>
  <h2>Choose a new password</h2>
  {error_html}
  <form method="post" action="/user/reset-password">
    <input type="hidden" name="token" value="{escape(token)}">
    <label>New password
      <input type="password" name="password" minlength="{min_password_length}" maxlength="{max_password_length}" required>
    </label>
    <label>New password again
      <input type="password" name="password_again" minlength="{min_password_length}" maxlength="{max_password_length}" required>
    </label>
    <button type="submit">Change password</button>
  </form>
</body>
</html>
"""
