import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Sequence

import aiosmtplib

from settings.config import get_settings

logger = logging.getLogger(__name__)


class EmailClient:
    """
    SMTP-based email client.
    Reads configuration from settings and sends HTML emails asynchronously.
    """

    @staticmethod
    def is_configured() -> bool:
        return bool(get_settings().SMTP_HOST)

    async def send_email(
        self,
        to: Sequence[str],
        subject: str,
        html_body: str,
        reply_to: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        if not to:
            return None

        sender_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME or "no-reply@localhost"
        sender_name = settings.SMTP_FROM_NAME or settings.COMPANY_NAME or settings.PRODUCT_NAME
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{sender_name} <{sender_email}>"
        message["To"] = ", ".join(to)
        if reply_to:
            message["Reply-To"] = reply_to
        message.attach(MIMEText(html_body, "html", "utf-8"))

        host = settings.SMTP_HOST or ""
        port = settings.SMTP_PORT or 587
        username = settings.SMTP_USERNAME or None
        password = settings.SMTP_PASSWORD or None

        if settings.SMTP_USE_SSL:
            await aiosmtplib.send(
                message,
                hostname=host,
                port=port,
                username=username,
                password=password,
                use_tls=True,
            )
        else:
            await aiosmtplib.send(
                message,
                hostname=host,
                port=port,
                start_tls=settings.SMTP_USE_TLS,
                username=username,
                password=password,
            )
        logger.info("Sent email %r to %d recipient(s)", subject, len(to))
        return None
