"""
Confirmation mail for new registrations

The relay is created lazily on first send. With SMTP credentials configured
it talks to that server; otherwise a disposable Ethereal account is
provisioned and its login is logged so sent mail can be inspected.
"""
import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from teamreg.config import Settings
from teamreg.errors import DependencyFailure
from teamreg.models import TeamRegistration
from teamreg.utils import format_registered_on


logger = logging.getLogger(__name__)

ETHEREAL_API_URL = "https://api.nodemailer.com/user"
ETHEREAL_WEB_URL = "https://ethereal.email"
SENDER_NAME = "Team Registration Platform"
TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class SmtpRelay:
    """Sends EmailMessage objects over SMTP, upgrading with STARTTLS when offered"""

    def __init__(self, host: str, port: int, user: Optional[str] = None, password: Optional[str] = None,
                 timeout: float = 30.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def _send_blocking(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=ssl.create_default_context())
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send(self, message: EmailMessage) -> None:
        await asyncio.to_thread(self._send_blocking, message)


async def create_ethereal_relay(client: httpx.AsyncClient) -> SmtpRelay:
    """Provision a disposable Ethereal inbox and return a relay for it"""
    logger.info("📧 Creating Ethereal test email account...")
    response = await client.post(ETHEREAL_API_URL, json={"requestor": "teamreg", "version": "1.0.0"})
    response.raise_for_status()
    account = response.json()
    if account.get("status") != "success":
        raise DependencyFailure(f"Ethereal account creation failed: {account.get('error')}")

    smtp = account.get("smtp") or {}
    logger.info(
        "📬 Ethereal test email account created\n"
        f"    User: {account['user']}\n"
        f"    Pass: {account['pass']}\n"
        f"    View sent emails at: {account.get('web') or ETHEREAL_WEB_URL}"
    )
    return SmtpRelay(
        host=smtp.get("host", "smtp.ethereal.email"),
        port=int(smtp.get("port", 587)),
        user=account["user"],
        password=account["pass"],
    )


def relay_factory(settings: Settings, client: httpx.AsyncClient) -> Callable[[], Awaitable[SmtpRelay]]:
    """Pick the relay source for the configured credentials"""
    async def create() -> SmtpRelay:
        if settings.smtp_configured:
            logger.info(f"📧 Using SMTP relay {settings.smtp_host}:{settings.smtp_port}")
            return SmtpRelay(settings.smtp_host, settings.smtp_port, settings.smtp_user, settings.smtp_pass)
        return await create_ethereal_relay(client)

    return create


def template_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class NotificationDispatcher:
    """
    Render and send the registration confirmation to the team leader

    Args:
        create_relay: Coroutine factory called once, on first send
        from_address: Envelope sender address
        templates: Jinja2 environment holding confirmation.html/.txt
    """

    def __init__(self, create_relay: Callable[[], Awaitable], from_address: str,
                 templates: Optional[Environment] = None):
        self._create_relay = create_relay
        self._relay = None
        self._relay_lock = asyncio.Lock()
        self.from_address = from_address
        self.templates = templates or template_environment()

    async def relay(self):
        async with self._relay_lock:
            if self._relay is None:
                self._relay = await self._create_relay()
            return self._relay

    def render(self, record: TeamRegistration) -> EmailMessage:
        context = {
            "team": record,
            "members": record.team_members,
            "verification_status": "Verified" if record.id_card_verified else "Pending",
            "registered_on": format_registered_on(record.created_at),
            "year": record.created_at.year,
        }
        message = EmailMessage()
        message["From"] = formataddr((SENDER_NAME, self.from_address))
        message["To"] = record.team_leader_email
        message["Subject"] = f"✅ Team Registration Confirmed - {record.team_id}"
        message.set_content(self.templates.get_template("confirmation.txt").render(**context).strip())
        message.add_alternative(self.templates.get_template("confirmation.html").render(**context), subtype="html")
        return message

    async def send_confirmation(self, record: TeamRegistration) -> None:
        """
        Raises:
            DependencyFailure: The relay could not be created or rejected the message
        """
        message = self.render(record)
        try:
            relay = await self.relay()
            await relay.send(message)
        except DependencyFailure:
            raise
        except (OSError, smtplib.SMTPException, httpx.HTTPError, KeyError, ValueError) as e:
            raise DependencyFailure(f"Failed to send confirmation email: {e}") from e
        logger.info(f"✅ Confirmation email sent to {record.team_leader_email}")
