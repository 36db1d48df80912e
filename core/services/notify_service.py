import logging
import smtplib
from email.message import EmailMessage

from core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class SmtpNotifier:
    """Mail the rendered PDF to the requester."""

    def __init__(self, host, port=587, user=None, password=None, sender=None, use_tls=True, timeout=30):
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.sender = sender or user
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_secrets(cls, smtp_conf):
        return cls(
            host=smtp_conf["host"],
            port=smtp_conf.get("port", 587),
            user=smtp_conf.get("user"),
            password=smtp_conf.get("password"),
            sender=smtp_conf.get("sender"),
            use_tls=smtp_conf.get("use_tls", True),
        )

    def build_message(self, recipient, subject, body, attachment):
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)
        if attachment is not None:
            msg.add_attachment(
                attachment.content,
                maintype="application",
                subtype="pdf",
                filename=attachment.file_name,
            )
        return msg

    def send(self, recipient, subject, body, attachment):
        msg = self.build_message(recipient, subject, body, attachment)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise ExternalServiceError(f"mail to {recipient} failed: {e}")
        logger.info(f"Mail sent to {recipient}: {subject}")
