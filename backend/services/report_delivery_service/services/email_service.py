"""
Email Service for scheduled report delivery.

Sends rendered report emails over SMTP. Connection settings come from
ReportDeliveryServiceSettings (SMTP_SERVER, SMTP_PORT, SMTP_USE_SSL, ...).
The blocking smtplib conversation runs in a worker thread so the event loop
keeps serving requests while a report is delivered.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

from loguru import logger

from common.config.settings import ReportDeliveryServiceSettings
from services.report_delivery_service.errors import TransportError


class EmailService:
    """SMTP transport for report emails."""

    def __init__(self, settings: ReportDeliveryServiceSettings):
        """Initialize email service with SMTP settings.

        Args:
            settings: Report delivery settings carrying the SMTP block
        """
        self.settings = settings

    def build_message(
        self,
        to: list[str],
        cc: list[str],
        subject: str,
        html: str,
    ) -> MIMEMultipart:
        """Compose the MIME message. Bcc addresses never appear in headers."""
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.settings.EMAIL_FROM_NAME, self.settings.EMAIL_FROM_ADDRESS))
        msg["To"] = ", ".join(to)
        if cc:
            msg["Cc"] = ", ".join(cc)
        msg["Subject"] = subject
        domain = self.settings.EMAIL_FROM_ADDRESS.rpartition("@")[2] or None
        msg["Message-ID"] = make_msgid(domain=domain)
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    async def send(
        self,
        to: list[str],
        cc: list[str],
        bcc: list[str],
        subject: str,
        html: str,
    ) -> str:
        """
        Send one report email to all recipients.

        Args:
            to: Primary recipients, at least one
            cc: Carbon-copy recipients
            bcc: Blind carbon-copy recipients
            subject: Final subject line
            html: Final HTML body

        Returns:
            str: Message-ID of the sent email

        Raises:
            TransportError: SMTP connection, authentication or delivery failure
        """
        msg = self.build_message(to, cc, subject, html)
        recipients = [*to, *cc, *bcc]
        try:
            await asyncio.to_thread(self._deliver, msg, recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery of '{subject}' failed: {e}")
            raise TransportError(f"Email delivery failed: {e}") from e

        logger.info(f"Sent '{subject}' to {len(recipients)} recipients ({msg['Message-ID']})")
        return msg["Message-ID"]

    def _deliver(self, msg: MIMEMultipart, recipients: list[str]) -> None:
        settings = self.settings
        smtp_server = None
        try:
            if settings.SMTP_USE_SSL:
                smtp_server = smtplib.SMTP_SSL(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=30)
            else:
                smtp_server = smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=30)
                if settings.SMTP_USE_TLS:
                    smtp_server.starttls()

            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp_server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)

            refused = smtp_server.send_message(msg, to_addrs=recipients)
            if refused:
                logger.warning(f"SMTP server refused recipients: {', '.join(refused)}")
        finally:
            if smtp_server:
                try:
                    smtp_server.quit()
                except (smtplib.SMTPException, OSError):
                    pass
