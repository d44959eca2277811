import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


class EmailProvider(ABC):
    """Outbound email transport."""

    @abstractmethod
    def send_email(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError()


class LogProvider(EmailProvider):
    """Logs instead of sending (dev/testing)."""

    def send_email(self, to: str, subject: str, body: str) -> None:
        logger.info("[LogProvider] Sending email to %s subject=%s", to, subject)
        logger.debug("Email body: %s", body)


class SmtpProvider(EmailProvider):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send_email(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", to, exc)
            raise ExternalServiceError("The ticket email could not be sent")


def get_email_provider() -> EmailProvider:
    if settings.EMAIL_PROVIDER == "smtp":
        return SmtpProvider(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.EMAIL_FROM,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
        )
    return LogProvider()


def format_price(amount: int) -> str:
    return f"{amount / 100:,.2f} {settings.CURRENCY}".replace(",", " ")


def render(template_name: str, context: Optional[Dict] = None) -> str:
    template = _env.get_template(template_name)
    return template.render(format_price=format_price, **(context or {}))


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


def send_ticket_email(provider: EmailProvider, context: Dict) -> EmailResult:
    """
    Render and dispatch the ticket email.

    Never raises: a failed send is reported in the result so the booking it
    belongs to still stands.
    """
    subject = f"Your tickets for {context['show_title']} ({context['booking_reference']})"
    try:
        body = render("email/ticket.txt", context)
        provider.send_email(context["customer_email"], subject, body)
    except ExternalServiceError as exc:
        return EmailResult(success=False, error=exc.message)
    except Exception:
        logger.exception("Ticket email for %s failed", context.get("booking_reference"))
        return EmailResult(success=False, error="The ticket email could not be sent")
    return EmailResult(success=True)
