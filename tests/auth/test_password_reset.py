"""Tests for the forgot-password / reset-password flow."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.auth.password import verify_password
from snapshare.auth.service import reset_password
from snapshare.db.models import CodePurpose, VerificationCode
from snapshare.errors import InvalidOrExpiredCodeError
from snapshare.otp.service import issue_code

FORGOT = "/api/v1/auth/forgot-password"
CHECK = "/api/v1/auth/verify-reset-code"
RESET = "/api/v1/auth/reset-password"


class TestForgotPassword:
    async def test_sends_reset_code(self, client: AsyncClient, mock_email_service, make_account, sent_code):
        await make_account("alice", "alice@example.com")
        response = await client.post(FORGOT, json={"email": "alice@example.com"})
        assert response.status_code == 200
        call = mock_email_service.send_template.call_args.kwargs
        assert call["template_name"] == "password_reset_otp"
        assert len(sent_code()) == 6

    async def test_unknown_email_same_response(self, client: AsyncClient, mock_email_service):
        response = await client.post(FORGOT, json={"email": "ghost@example.com"})
        assert response.status_code == 200
        assert "reset code" in response.json()["message"]
        mock_email_service.send_template.assert_not_called()

    async def test_invalid_email(self, client: AsyncClient, mock_email_service):
        response = await client.post(FORGOT, json={"email": "nope"})
        assert response.status_code == 400


class TestResetPassword:
    async def test_check_code_is_not_consuming(
        self, client: AsyncClient, mock_email_service, make_account, sent_code
    ):
        await make_account("alice", "alice@example.com")
        await client.post(FORGOT, json={"email": "alice@example.com"})
        code = sent_code()

        for _ in range(2):
            response = await client.post(CHECK, json={"email": "alice@example.com", "code": code})
            assert response.status_code == 200

    async def test_reset_changes_password(
        self, client: AsyncClient, mock_email_service, make_account, sent_code, db_session: AsyncSession
    ):
        account = await make_account("alice", "alice@example.com")
        await client.post(FORGOT, json={"email": "alice@example.com"})
        response = await client.post(
            RESET, json={"email": "alice@example.com", "code": sent_code(), "newPassword": "brand-new-pw"}
        )
        assert response.status_code == 200
        assert mock_email_service.send_template.call_args.kwargs["template_name"] == "password_changed"

        await db_session.refresh(account)
        assert verify_password("brand-new-pw", account.password_hash)

        login = await client.post(
            "/api/v1/auth/login", json={"usernameOrEmail": "alice", "password": "brand-new-pw"}
        )
        assert login.status_code == 200

    async def test_reset_code_single_use(self, client: AsyncClient, mock_email_service, make_account, sent_code):
        await make_account("alice", "alice@example.com")
        await client.post(FORGOT, json={"email": "alice@example.com"})
        code = sent_code()
        body = {"email": "alice@example.com", "code": code, "newPassword": "brand-new-pw"}
        assert (await client.post(RESET, json=body)).status_code == 200
        response = await client.post(RESET, json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_or_expired_code"

    async def test_wrong_code(self, client: AsyncClient, mock_email_service, make_account, sent_code):
        await make_account("alice", "alice@example.com")
        await client.post(FORGOT, json={"email": "alice@example.com"})
        wrong = "ZZZZZZ" if sent_code() != "ZZZZZZ" else "YYYYYY"
        response = await client.post(CHECK, json={"email": "alice@example.com", "code": wrong})
        assert response.status_code == 400

    async def test_unknown_account(self, client: AsyncClient, mock_email_service):
        response = await client.post(
            RESET, json={"email": "ghost@example.com", "code": "ABC123", "newPassword": "brand-new-pw"}
        )
        assert response.status_code == 404

    async def test_weak_new_password(self, client: AsyncClient, mock_email_service, make_account, sent_code):
        await make_account("alice", "alice@example.com")
        await client.post(FORGOT, json={"email": "alice@example.com"})
        response = await client.post(
            RESET, json={"email": "alice@example.com", "code": sent_code(), "newPassword": "abc"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_expired_code_stays_deleted_after_rollback(self, db_session: AsyncSession, make_account):
        account = await make_account("alice", "alice@example.com")
        issued_at = datetime.now(timezone.utc) - timedelta(minutes=20)
        code = await issue_code(db_session, account.id, CodePurpose.PASSWORD_RESET.value, ttl_minutes=15, now=issued_at)
        await db_session.commit()

        with pytest.raises(InvalidOrExpiredCodeError):
            await reset_password(db_session, "alice@example.com", code, "brand-new-pw")
        await db_session.rollback()

        remaining = await db_session.execute(select(func.count()).select_from(VerificationCode))
        assert remaining.scalar_one() == 0
