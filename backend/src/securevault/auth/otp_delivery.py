"""Out-of-band delivery channels for one-time codes."""

import logging
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)


class OtpDeliveryError(Exception):
    """Raised when a code could not be handed to the delivery channel."""


class OtpSender(ABC):
    """Sends a one-time code to the account holder."""

    @abstractmethod
    def send(self, recipient: str, code: str, expires_at: datetime) -> None:
        """Deliver ``code`` to ``recipient``.

        Raises:
            OtpDeliveryError: If the channel rejected the message
        """
        pass


class SmtpOtpSender(OtpSender):
    """E-mails codes through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def send(self, recipient: str, code: str, expires_at: datetime) -> None:
        msg = MIMEText(
            f"Your verification code is {code}.\n"
            f"It expires at {expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')}.\n"
        )
        msg["Subject"] = "Your verification code"
        msg["From"] = self.sender
        msg["To"] = recipient

        try:
            smtp = smtplib.SMTP(self.host, self.port, timeout=10)
            try:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
            finally:
                smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise OtpDeliveryError(f"Failed to send verification code: {e}") from e

        logger.info(f"Verification code e-mailed via {self.host}:{self.port}")
