"""
Outgoing email: rendering, per-recipient throttling and delivery.

``EmailService.send_template`` renders one of the templates in
``snapshare.email.templates`` and hands the message to the configured
provider (``SNAP_EMAIL_PROVIDER``: smtp, resend or ses). Delivery problems
are logged and reported as False; callers decide whether that matters.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from email.message import EmailMessage
from typing import TYPE_CHECKING

import structlog

from snapshare.config import Settings, get_settings
from snapshare.email.templates import (
    account_activated,
    password_changed,
    password_reset_otp,
    registration_otp,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()

Rendered = tuple[str, str, str]

# name -> renderer over the send_template context
_TEMPLATE_REGISTRY: dict[str, Callable[[Mapping[str, str]], Rendered]] = {
    "registration_otp": lambda ctx: registration_otp(
        ctx.get("username", ""), ctx["code"], int(ctx.get("expires_minutes", 2))
    ),
    "password_reset_otp": lambda ctx: password_reset_otp(
        ctx.get("username", ""), ctx["code"], int(ctx.get("expires_minutes", 15))
    ),
    "password_changed": lambda ctx: password_changed(ctx.get("username", "")),
    "account_activated": lambda ctx: account_activated(ctx.get("username", ""), ctx.get("login_url", "")),
}


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str


class BaseEmailProvider(ABC):
    """A delivery backend. ``send`` raises on failure."""

    name: str

    def __init__(self, from_address: str, from_name: str) -> None:
        self.sender = f"{from_name} <{from_address}>"

    @abstractmethod
    async def send(self, message: OutgoingEmail) -> None: ...


class SMTPProvider(BaseEmailProvider):
    name = "smtp"

    def __init__(
        self,
        from_address: str,
        from_name: str,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
    ) -> None:
        super().__init__(from_address, from_name)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    async def send(self, message: OutgoingEmail) -> None:
        import aiosmtplib

        mime = EmailMessage()
        mime["From"] = self.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")

        await aiosmtplib.send(
            mime,
            hostname=self.host,
            port=self.port,
            username=self.username or None,
            password=self.password or None,
            start_tls=self.use_tls,
        )


class ResendProvider(BaseEmailProvider):
    """Resend HTTP API."""

    name = "resend"
    API_URL = "https://api.resend.com/emails"

    def __init__(self, from_address: str, from_name: str, api_key: str) -> None:
        super().__init__(from_address, from_name)
        self.api_key = api_key

    async def send(self, message: OutgoingEmail) -> None:
        import httpx

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                self.API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": [message.to],
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                },
            )
            response.raise_for_status()


class SESProvider(BaseEmailProvider):
    """AWS SES; needs the ``ses`` extra (aioboto3)."""

    name = "ses"

    def __init__(self, from_address: str, from_name: str, region: str) -> None:
        super().__init__(from_address, from_name)
        self.region = region

    async def send(self, message: OutgoingEmail) -> None:
        import aioboto3

        def part(data: str) -> dict[str, str]:
            return {"Data": data, "Charset": "UTF-8"}

        async with aioboto3.Session().client("ses", region_name=self.region) as ses:
            await ses.send_email(
                Source=self.sender,
                Destination={"ToAddresses": [message.to]},
                Message={
                    "Subject": part(message.subject),
                    "Body": {"Text": part(message.text), "Html": part(message.html)},
                },
            )


_PROVIDERS: dict[str, Callable[[Settings], BaseEmailProvider]] = {
    "smtp": lambda s: SMTPProvider(
        s.email_from_address,
        s.email_from_name,
        host=s.smtp_host,
        port=s.smtp_port,
        username=s.smtp_username,
        password=s.smtp_password,
        use_tls=s.smtp_use_tls,
    ),
    "resend": lambda s: ResendProvider(s.email_from_address, s.email_from_name, api_key=s.resend_api_key),
    "ses": lambda s: SESProvider(s.email_from_address, s.email_from_name, region=s.ses_region),
}


def _create_provider(settings: Settings | None = None) -> BaseEmailProvider:
    settings = settings or get_settings()
    build = _PROVIDERS.get(settings.email_provider.lower())
    if build is None:
        msg = f"Unsupported email provider: {settings.email_provider}"
        raise ValueError(msg)
    return build(settings)


class EmailService:
    """Renders, throttles and delivers mail through one provider."""

    RATE_LIMIT_WINDOW = 3600

    def __init__(
        self,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
        rate_limit_per_hour: int | None = None,
    ) -> None:
        self.provider = provider or _create_provider()
        self._redis = redis
        self.rate_limit_max = (
            rate_limit_per_hour if rate_limit_per_hour is not None else get_settings().email_rate_limit_per_hour
        )

    async def _within_rate_limit(self, to: str) -> bool:
        """Count this send against the recipient's hourly budget. Always True without Redis."""
        if self._redis is None:
            return True
        key = "email_rate:" + hashlib.sha256(to.strip().lower().encode()).hexdigest()
        sent = int(await self._redis.incr(key))
        if sent == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return sent <= self.rate_limit_max

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        """Deliver one message. False when throttled or when the provider fails."""
        if not await self._within_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False

        try:
            await self.provider.send(OutgoingEmail(to=to, subject=subject, html=html_body, text=text_body))
        except Exception:
            logger.exception("email_send_failed", to=to, provider=self.provider.name)
            return False

        logger.info("email_sent", to=to, subject=subject, provider=self.provider.name)
        return True

    async def send_template(self, to: str, template_name: str, context: Mapping[str, str]) -> bool:
        """
        Render ``template_name`` with ``context`` and send it to ``to``.

        Raises:
            ValueError: Unknown template name (a programming error, not a delivery failure).
        """
        render = _TEMPLATE_REGISTRY.get(template_name)
        if render is None:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)
        subject, html_body, text_body = render(context)
        return await self.send_email(to, subject, html_body, text_body)


_email_service: EmailService | None = None


def get_email_service(redis: Redis | None = None) -> EmailService:
    """Process-wide service, created on first use with the provider from settings."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=redis)
    return _email_service


def reset_email_service() -> None:
    global _email_service  # noqa: PLW0603
    _email_service = None
