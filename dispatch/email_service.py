"""
Outbound email
Composes notification emails and hands them to a transport: custom SMTP when
configured, otherwise the serverless email function, otherwise Resend.
"""

import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from collections.abc import Mapping
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Optional

import httpx
import resend
from mjml import mjml_to_html
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from . import config
from .email_templates import (
    mission_assignment_template,
    mission_assignment_text,
    mission_response_template,
    payment_status_template,
)

logger = logging.getLogger(__name__)


class EmailPayload(BaseModel):
    to: str
    subject: str
    html: str = ""
    mjml: Optional[str] = None
    text: str = ""
    from_address: Optional[str] = None
    from_name: Optional[str] = None


class EmailSendResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailTransport(ABC):
    name = "transport"

    @abstractmethod
    async def send(self, payload: EmailPayload) -> EmailSendResult:
        """Deliver ``payload``; may raise on transport failure"""


class SmtpTransport(EmailTransport):
    """Send through an SMTP server (implicit TLS on 465, STARTTLS otherwise)"""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        default_from: str = config.SMTP_FROM,
        default_from_name: str = config.SMTP_FROM_NAME,
        timeout: int = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.default_from = default_from
        self.default_from_name = default_from_name
        self.timeout = timeout

    def build_message(self, payload: EmailPayload) -> MIMEMultipart:
        sender = payload.from_address or self.default_from
        msg = MIMEMultipart("alternative")
        msg["Subject"] = payload.subject
        msg["From"] = formataddr((payload.from_name or self.default_from_name, sender))
        msg["To"] = payload.to
        msg["Message-ID"] = make_msgid(domain=sender.split("@")[-1])
        if payload.text:
            msg.attach(MIMEText(payload.text, "plain", "utf-8"))
        msg.attach(MIMEText(payload.html, "html", "utf-8"))
        return msg

    def _send_sync(self, payload: EmailPayload) -> EmailSendResult:
        msg = self.build_message(payload)
        sender = payload.from_address or self.default_from

        if self.port == 465:
            context = ssl.create_default_context()
            connection = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
        else:
            connection = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        # Leaving the block sends QUIT and closes the socket, even if STARTTLS fails
        with connection as server:
            if self.port != 465 and self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username:
                server.login(self.username, self.password or "")
            server.sendmail(sender, [payload.to], msg.as_string())

        logger.info(f"✅ SMTP email sent via {self.host}")
        return EmailSendResult(success=True, message_id=msg["Message-ID"])

    async def send(self, payload: EmailPayload) -> EmailSendResult:
        return await run_in_threadpool(self._send_sync, payload)


class FunctionTransport(EmailTransport):
    """POST the payload to a serverless email function"""

    name = "function"

    def __init__(self, url: str, api_key: Optional[str] = None, timeout: float = 15.0):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    async def send(self, payload: EmailPayload) -> EmailSendResult:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        body = {
            "to": payload.to,
            "subject": payload.subject,
            "html": payload.html,
            "text": payload.text,
        }
        if payload.from_address:
            body["from"] = payload.from_address
        if payload.from_name:
            body["fromName"] = payload.from_name

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(self.url, json=body, headers=headers)

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code >= 400 or data.get("success") is False:
            error = data.get("error") or f"HTTP {resp.status_code}"
            logger.warning(f"⚠️ Email function rejected message: {error}")
            return EmailSendResult(success=False, error=error)

        return EmailSendResult(success=True, message_id=data.get("messageId"))


class ResendTransport(EmailTransport):
    """Send through the Resend API"""

    name = "resend"

    def __init__(self, api_key: str, default_from: str = config.SMTP_FROM):
        self.api_key = api_key
        self.default_from = default_from

    def _send_sync(self, payload: EmailPayload) -> EmailSendResult:
        resend.api_key = self.api_key
        sender = payload.from_address or self.default_from
        if payload.from_name:
            sender = formataddr((payload.from_name, sender))

        response = resend.Emails.send(
            {
                "from": sender,
                "to": [payload.to],
                "subject": payload.subject,
                "html": payload.html,
                "text": payload.text,
            }
        )
        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        return EmailSendResult(success=True, message_id=message_id)

    async def send(self, payload: EmailPayload) -> EmailSendResult:
        return await run_in_threadpool(self._send_sync, payload)


def get_default_transport() -> Optional[EmailTransport]:
    """Pick the configured transport: SMTP, then email function, then Resend"""
    if config.SMTP_HOST:
        return SmtpTransport(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
        )
    if config.EMAIL_FUNCTION_URL:
        return FunctionTransport(config.EMAIL_FUNCTION_URL, config.EMAIL_FUNCTION_KEY)
    if config.RESEND_API_KEY:
        return ResendTransport(config.RESEND_API_KEY)
    return None


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"❌ MJML compilation error: {e}")
        raise ValueError(f"Failed to compile MJML template: {e}") from e

    # mjml_to_html returns a mapping with 'html' and 'errors' keys
    if isinstance(result, Mapping):
        if result.get("errors"):
            logger.warning(f"⚠️ MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


async def send_email(
    payload: EmailPayload, transport: Optional[EmailTransport] = None
) -> EmailSendResult:
    """
    Send an email and report the transport's outcome unchanged.

    MJML content is compiled to HTML first. Compilation and transport
    exceptions are caught here and returned as a failed result.
    """
    transport = transport or get_default_transport()
    if transport is None:
        logger.error("❌ No email service configured - set SMTP_HOST, EMAIL_FUNCTION_URL or RESEND_API_KEY")
        return EmailSendResult(success=False, error="Email service not configured")

    try:
        if payload.mjml:
            payload = payload.model_copy(update={"html": compile_mjml_to_html(payload.mjml)})
        logger.info(f"📧 Sending email via {transport.name} to: {payload.to}")
        result = await transport.send(payload)
    except Exception as e:
        logger.error(f"❌ Email send error to {payload.to} via {transport.name}: {e}")
        return EmailSendResult(success=False, error=str(e))

    if result.success:
        logger.info(f"✅ Email sent successfully: {result.message_id}")
    return result


# ============================================
# Pre-built emails for dispatch events
# ============================================


async def send_assignment_notification(
    technician,
    mission,
    admin_name: Optional[str] = None,
    transport: Optional[EmailTransport] = None,
) -> EmailSendResult:
    """Email a technician about a mission proposed to them"""
    if not technician.email:
        return EmailSendResult(success=False, error="Aucune adresse email pour ce technicien")

    payload = EmailPayload(
        to=technician.email,
        subject=f"🎯 Nouvelle mission assignée : {mission.title}",
        mjml=mission_assignment_template(technician.name, mission, admin_name),
        text=mission_assignment_text(technician.name, mission, admin_name),
        from_name=config.SMTP_FROM_NAME,
    )
    return await send_email(payload, transport)


async def send_bulk_assignment_notifications(
    technicians,
    mission,
    admin_name: Optional[str] = None,
    transport: Optional[EmailTransport] = None,
) -> dict:
    """Notify several technicians concurrently; failures do not stop the others"""
    technicians = list(technicians)
    results = await asyncio.gather(
        *(
            send_assignment_notification(technician, mission, admin_name, transport)
            for technician in technicians
        ),
        return_exceptions=True,
    )

    summary = {"success": [], "failed": []}
    for technician, result in zip(technicians, results):
        if isinstance(result, Exception):
            summary["failed"].append({"technician_id": technician.id, "error": str(result)})
        elif result.success:
            summary["success"].append(result)
        else:
            summary["failed"].append(
                {"technician_id": technician.id, "error": result.error or "Erreur inconnue"}
            )
    return summary


async def send_mission_response_email(
    to: str,
    technician_name: str,
    mission,
    accepted: bool,
    reason: Optional[str] = None,
    transport: Optional[EmailTransport] = None,
) -> EmailSendResult:
    """Tell an admin that a technician answered a mission proposal"""
    status = "acceptée" if accepted else "refusée"
    payload = EmailPayload(
        to=to,
        subject=f"Mission {status} - {mission.title}",
        mjml=mission_response_template(technician_name, mission, accepted, reason),
        text=f"La mission « {mission.title} » a été {status} par {technician_name}.",
    )
    return await send_email(payload, transport)


async def send_payment_status_email(
    to: str,
    technician_name: str,
    mission_title: str,
    amount: float,
    status: str,
    transport: Optional[EmailTransport] = None,
) -> EmailSendResult:
    payload = EmailPayload(
        to=to,
        subject=f"Paiement {mission_title}",
        mjml=payment_status_template(technician_name, mission_title, amount, status),
        text=f"Le statut du paiement pour « {mission_title} » est maintenant : {status}.",
    )
    return await send_email(payload, transport)
