import os
import logging
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import Settings

logger = logging.getLogger(__name__)

# === Templates ===
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
TEMPLATE_DIR = os.path.join(BASE_DIR, "../templates/email")

templates = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)

SENDER_NAME = "Weather API"


class Mailer:
    """Base mail transport. `send` returns a message id, or None when sending failed."""

    name = "base"

    def __init__(self, sender: str):
        self.sender = sender

    def build_message(self, to_email: str, subject: str, text: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((SENDER_NAME, self.sender))
        message["To"] = to_email
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self.sender.rpartition("@")[2] or None)
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    async def deliver(self, message: EmailMessage):
        raise NotImplementedError

    async def send(self, to_email: str, subject: str, text: str, html: str) -> str | None:
        message = self.build_message(to_email, subject, text, html)
        try:
            await self.deliver(message)
        except Exception as e:
            logger.error(f"❌ Error sending email '{subject}' to {to_email} via {self.name}: {e}")
            return None

        logger.info(f"📤 Message sent: {message['Message-ID']}")
        return message["Message-ID"]

    async def aclose(self):
        pass


class SMTPMailer(Mailer):
    name = "smtp"

    def __init__(self, sender: str, host: str, port: int, username: str, password: str,
                 secure: bool = False, timeout: float = 30.0):
        super().__init__(sender)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.secure = secure
        self.timeout = timeout

    async def deliver(self, message: EmailMessage):
        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.secure,
            # STARTTLS is negotiated when offered unless implicit TLS is used
            start_tls=False if self.secure else None,
            timeout=self.timeout,
        )


class ConsoleMailer(Mailer):
    """Fallback transport: writes the message to the log instead of sending it."""

    name = "console"

    async def deliver(self, message: EmailMessage):
        logger.warning("Email transport not configured. Logging email to console:")
        logger.info(f"To: {message['To']}")
        logger.info(f"Subject: {message['Subject']}")
        for part in message.iter_parts():
            label = "HTML Body" if part.get_content_type() == "text/html" else "Text Body"
            logger.info(f"{label}: {part.get_content()}")


def build_mailer(settings: Settings) -> Mailer:
    if settings.smtp_configured:
        logger.info(f"✉️ Using SMTP transport {settings.smtp_host}:{settings.smtp_port}")
        return SMTPMailer(
            sender=settings.email_from,
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            secure=settings.smtp_secure,
        )

    logger.warning("⚠️ SMTP credentials not fully provided. Emails will be logged to the console.")
    return ConsoleMailer(sender=settings.email_from)


# === Public Shortcuts ===
async def send_template_email(mailer: Mailer, to_email: str, template_key: str, subject: str, variables: dict):
    variables = {**variables, "email": to_email}
    text = templates.get_template(f"{template_key}.txt").render(**variables)
    html = templates.get_template(f"{template_key}.html").render(**variables)
    return await mailer.send(to_email, subject, text, html)


async def send_confirmation_email(mailer: Mailer, to_email: str, city: str, confirmation_link: str):
    return await send_template_email(
        mailer,
        to_email,
        template_key="confirm_subscription",
        subject="Confirm Your Weather API Subscription",
        variables={"city": city, "confirmation_link": confirmation_link},
    )


async def send_subscription_confirmed_email(mailer: Mailer, to_email: str, city: str, frequency: str,
                                            unsubscribe_link: str):
    return await send_template_email(
        mailer,
        to_email,
        template_key="subscription_confirmed",
        subject="Your Weather API Subscription Is Active",
        variables={"city": city, "frequency": frequency, "unsubscribe_link": unsubscribe_link},
    )
