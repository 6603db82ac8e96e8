"""Email dispatcher: console mock when MAIL_ENABLED=False, SMTP otherwise.

When MAIL_ENABLED is False, the message is written to the logs instead of
being sent and ``send`` reports it as not delivered.
"""
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class EmailDispatcher:
    def __init__(self, config: Settings | None = None):
        self._config = config or default_settings
        self.enabled = self._config.MAIL_ENABLED

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send an HTML e-mail. Returns True once the SMTP server accepted it.

        SMTP errors propagate; callers treat e-mail as best effort.
        """
        if not self.enabled:
            logger.info(
                "\n"
                "=== REMINDER EMAIL (mail disabled) ===\n"
                "To: %s\n"
                "Subject: %s\n"
                "======================================",
                to,
                subject,
            )
            return False

        cfg = self._config
        message = EmailMessage()
        message["From"] = formataddr((cfg.MAIL_FROM_NAME, cfg.MAIL_FROM))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This reminder is best viewed in an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        with smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=cfg.SMTP_TIMEOUT_SECONDS) as smtp:
            if cfg.SMTP_USE_TLS:
                smtp.starttls()
            if cfg.SMTP_USERNAME:
                smtp.login(cfg.SMTP_USERNAME, cfg.SMTP_PASSWORD)
            smtp.send_message(message)

        logger.info("Email sent to %s: %s", to, subject)
        return True
