"""
Session tokens: HS256 JWTs signed with ``jwt_secret_key``.

Only active accounts are issued tokens (at login). Claims: ``sub`` is the
account id, ``email`` is informational, ``type`` is always ``access``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from snapshare.config import get_settings

ACCESS = "access"
_REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss"]


def create_access_token(account_id: str, email: str) -> str:
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": account_id,
        "email": email,
        "type": ACCESS,
        "iss": settings.jwt_issuer,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """
    Decode ``token`` and check signature, issuer, expiry and token type.

    Raises:
        jwt.InvalidTokenError: For any failure; expiry is reported as "Token has expired".
    """
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    token_type = claims.get("type")
    if token_type != expected_type:
        msg = f"Expected token type '{expected_type}', got '{token_type}'"
        raise jwt.InvalidTokenError(msg)
    return claims
