"""
Outbound email transport.

Scan notifications are rendered as HTML. Every message also carries a plain
text part derived from that HTML so screen readers and text-only clients get
a readable report summary.
"""
import html
import re
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

import requests

from a11yscan.platform.config import settings
from a11yscan.platform.logger import get_logger

logger = get_logger("email_service")

_BLOCK_TAGS = re.compile(r"</?(p|div|br|tr|h[1-6]|li|table)[^>]*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]+>")
_STYLE_OR_SCRIPT = re.compile(r"<(style|script)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_BLANK_LINES = re.compile(r"\n\s*\n+")


class EmailDeliveryError(Exception):
    pass


def html_to_text(body: str) -> str:
    text = _STYLE_OR_SCRIPT.sub("", body)
    text = _BLOCK_TAGS.sub("\n", text)
    text = html.unescape(_ANY_TAG.sub("", text))
    lines = (line.strip() for line in text.splitlines())
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def send_email(to_email: str, subject: str, body: str, reply_to: Optional[str] = None):
    """
    Deliver an HTML email to a single recipient.

    The HTTP relay is preferred when configured; direct SMTP is used when it
    is not, or when the relay rejects the message. Raises EmailDeliveryError
    once every transport has failed.
    """
    reply_to = reply_to or settings.MAIL_REPLY_TO or None

    if settings.EMAIL_RELAY_URL and settings.EMAIL_RELAY_API_KEY:
        try:
            _send_via_relay(to_email, subject, body, reply_to)
            return
        except EmailDeliveryError as e:
            logger.warning(f"Relay delivery to {to_email} failed ({e}); retrying over SMTP")
    else:
        logger.debug("Email relay not configured, using SMTP")

    _send_via_smtp(build_message(to_email, subject, body, reply_to))


def build_message(to_email: str, subject: str, body: str, reply_to: Optional[str] = None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f'"{settings.MAIL_FROM_NAME}" <{settings.MAIL_FROM_ADDRESS}>'
    msg["To"] = to_email
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(html_to_text(body))
    msg.add_alternative(body, subtype="html")
    return msg


def _send_via_relay(to_email: str, subject: str, body: str, reply_to: Optional[str]):
    payload = {
        "to_email": to_email,
        "subject": subject,
        "body": body,
        "text_body": html_to_text(body),
        "from_address": settings.MAIL_FROM_ADDRESS,
        "from_name": settings.MAIL_FROM_NAME,
    }
    if reply_to:
        payload["reply_to"] = reply_to

    try:
        response = requests.post(
            settings.EMAIL_RELAY_URL,
            json=payload,
            headers={"X-API-Key": settings.EMAIL_RELAY_API_KEY},
            timeout=settings.EMAIL_RELAY_TIMEOUT,
        )
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise EmailDeliveryError("relay timed out") from e
    except requests.exceptions.RequestException as e:
        if getattr(e, "response", None) is not None:
            logger.error(f"Relay answered {e.response.status_code}: {e.response.text}")
        raise EmailDeliveryError(f"relay error: {e}") from e

    logger.info(f"Email '{subject}' sent via relay to {to_email}")


def _send_via_smtp(msg: EmailMessage):
    port = settings.MAIL_PORT
    try:
        if port == 465:
            with smtplib.SMTP_SSL(settings.MAIL_HOST, port, context=ssl.create_default_context()) as server:
                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
                server.send_message(msg)
        else:
            with smtplib.SMTP(settings.MAIL_HOST, port, timeout=settings.EMAIL_RELAY_TIMEOUT) as server:
                if settings.MAIL_ENCRYPTION.lower() in ("tls", "true"):
                    server.starttls(context=ssl.create_default_context())
                if settings.MAIL_USERNAME:
                    server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
                server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP delivery to {msg['To']} failed: {e}")
        raise EmailDeliveryError(f"SMTP delivery failed: {e}") from e

    logger.info(f"Email '{msg['Subject']}' sent via SMTP to {msg['To']}")
