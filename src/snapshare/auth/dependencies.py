"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.auth.jwt import verify_token
from snapshare.auth.service import get_account_by_id
from snapshare.database import get_session
from snapshare.db.models import Account
from snapshare.errors import UnauthorizedError

_bearer = HTTPBearer(auto_error=False)


async def _resolve_account(token: str, db: AsyncSession) -> Account:
    try:
        payload = verify_token(token, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError(str(e)) from e

    account = await get_account_by_id(db, str(payload["sub"]))
    if account is None:
        msg = "Account not found"
        raise UnauthorizedError(msg)
    if not account.is_active:
        msg = "Account is not active"
        raise UnauthorizedError(msg)
    return account


async def get_current_account(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Account:
    """
    Extract and verify the bearer JWT, return the Account.

    Raises UnauthorizedError (401) when the header is missing or the token is bad.
    """
    if credentials is None:
        msg = "Not authenticated"
        raise UnauthorizedError(msg)
    return await _resolve_account(credentials.credentials, db)


async def get_optional_account(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Account | None:
    """Like get_current_account, but anonymous requests get None instead of 401."""
    if credentials is None:
        return None
    return await _resolve_account(credentials.credentials, db)
