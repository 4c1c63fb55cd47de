"""Outgoing mail over SMTP. With MAIL_ENABLED off, messages are logged instead of sent."""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

from config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, app_settings: Settings | None = None):
        cfg = app_settings or default_settings
        self.enabled = bool(cfg.MAIL_ENABLED)
        self.smtp_host = cfg.SMTP_HOST
        self.smtp_port = cfg.SMTP_PORT
        self.smtp_username = cfg.SMTP_USERNAME
        self.smtp_password = cfg.SMTP_PASSWORD
        self.sender = cfg.mail_sender
        self.app_name = cfg.APP_NAME
        self.base_url = cfg.APP_BASE_URL.rstrip("/")
        self.ttl_minutes = cfg.VERIFICATION_TTL_MINUTES

    def send_email(self, to_email: str, subject: str, text_content: str, html_content: str | None = None) -> bool:
        """Returns True when the message was handed to the SMTP server."""
        if not self.enabled:
            logger.info("Mail disabled, would send to %s: %s", to_email, subject)
            logger.debug("Mail body: %s", text_content)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.app_name} <{self.sender}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_content, "plain"))
        if html_content:
            msg.attach(MIMEText(html_content, "html"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                if self.smtp_username and self.smtp_password:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send mail to %s", to_email)
            return False
        return True

    def verification_link(self, token: str) -> str:
        return f"{self.base_url}/api/auth/verify?{urlencode({'token': token})}"

    def send_verification_email(self, to_email: str, code: str, token: str) -> bool:
        link = self.verification_link(token)
        text = (
            f"Your verification code is {code}. This code expires in {self.ttl_minutes} minutes.\n\n"
            f"Or verify using this link: {link}"
        )
        html = (
            f"<p>Your verification code is <strong>{code}</strong>. "
            f"This code expires in {self.ttl_minutes} minutes.</p>"
            f'<p>Or verify using this link: <a href="{link}">Verify Email</a></p>'
        )
        return self.send_email(to_email, "Verify your email", text, html)


def get_email_service() -> EmailService:
    return EmailService()
