"""
Email templates for SnapShare.

All templates use inline CSS for email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

BG_PAGE = "#F5F6FA"
BG_CARD = "#FFFFFF"
ACCENT = "#E1306C"
TEXT_PRIMARY = "#1C1E21"
TEXT_SECONDARY = "#65676B"
BORDER = "#E4E6EB"


def _base_layout(content: str, app_name: str = "SnapShare") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="560" style="max-width: 560px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px;">
                            <span style="font-size: 24px; font-weight: 700; color: {ACCENT};">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 36px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                This email was sent by {app_name}.<br>
                                If you didn't expect this email, you can safely ignore it.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _code_block(code: str) -> str:
    """Render a one-time code in a large monospace box."""
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 24px auto;">
    <tr>
        <td align="center" style="background-color: {BG_PAGE}; border: 1px solid {BORDER}; border-radius: 8px; padding: 16px 28px;">
            <span style="font-family: 'SFMono-Regular', Menlo, Consolas, monospace; font-size: 30px; font-weight: 700; letter-spacing: 8px; color: {TEXT_PRIMARY};">{code}</span>
        </td>
    </tr>
</table>"""


def _button(url: str, label: str) -> str:
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {ACCENT}; border-radius: 8px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 14px 32px; color: #FFFFFF; font-size: 16px; font-weight: 600; text-decoration: none; border-radius: 8px;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def registration_otp(username: str, code: str, expires_minutes: int = 2) -> tuple[str, str, str]:
    """
    Registration verification code.

    Returns:
        (subject, html_body, text_body)
    """
    name = escape(username)
    subject = "Your SnapShare verification code"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">Confirm your email</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0;">
    Enter this code to finish creating your account:
</p>
{_code_block(code)}
<p style="color: {TEXT_SECONDARY}; font-size: 13px; line-height: 1.5; margin: 0;">
    The code expires in <strong style="color: {TEXT_PRIMARY};">{expires_minutes} minutes</strong>.
    If you didn't sign up, ignore this email.
</p>"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"Your SnapShare verification code is: {code}\n\n"
        f"The code expires in {expires_minutes} minutes.\n\n"
        f"If you did not sign up, please ignore this email.\n\n"
        f"-- The SnapShare Team"
    )
    return subject, html_body, text_body


def password_reset_otp(username: str, code: str, expires_minutes: int = 15) -> tuple[str, str, str]:
    """
    Password reset code.

    Returns:
        (subject, html_body, text_body)
    """
    name = escape(username)
    subject = "Reset your SnapShare password"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">Password reset</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0;">
    We received a request to reset your password. Use this code:
</p>
{_code_block(code)}
<p style="color: {TEXT_SECONDARY}; font-size: 13px; line-height: 1.5; margin: 0;">
    The code expires in <strong style="color: {TEXT_PRIMARY};">{expires_minutes} minutes</strong>.
    If you didn't request a reset, your password stays the same.
</p>"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"Your password reset code is: {code}\n\n"
        f"The code expires in {expires_minutes} minutes.\n\n"
        f"If you did not request a password reset, you can ignore this email.\n\n"
        f"-- The SnapShare Team"
    )
    return subject, html_body, text_body


def password_changed(username: str) -> tuple[str, str, str]:
    """Notification after a successful password reset."""
    name = escape(username)
    subject = "Your SnapShare password was changed"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">Password changed</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0;">
    Your password was just changed. If this wasn't you, reset your password immediately.
</p>"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"Your SnapShare password was just changed.\n\n"
        f"If you did not make this change, reset your password immediately.\n\n"
        f"-- The SnapShare Team"
    )
    return subject, html_body, text_body


def account_activated(username: str, login_url: str) -> tuple[str, str, str]:
    """Welcome email sent once the account has been promoted."""
    name = escape(username)
    subject = "Welcome to SnapShare"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;">Welcome to SnapShare!</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {name},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0;">
    Your account is verified and ready to use.
</p>
{_button(login_url, "Log in")}"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"Your SnapShare account is verified and ready to use.\n\n"
        f"Log in: {login_url}\n\n"
        f"-- The SnapShare Team"
    )
    return subject, html_body, text_body
