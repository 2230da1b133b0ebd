"""
wedjat/output/mailer.py — Sends the composed text by e-mail over SMTP/SSL.

Blocking; callers run :meth:`Mailer.send` on a worker thread.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Callable, Sequence

from wedjat.core.settings import EmailAccount

logger = logging.getLogger(__name__)

_SIGNOFF = (
    "This message was sent for {signature} using wedjat, experimental software "
    "to enable people with disabilities to use a computer."
)


class MailError(RuntimeError):
    """Raised when a message cannot be sent."""


class Mailer:
    """
    Sends messages from the account currently stored in the settings.

    Args:
        account: Returns the sender account at send time, so account changes
            made in the control panel apply to the next message.
    """

    def __init__(self, account: Callable[[], EmailAccount]) -> None:
        self._account = account

    def build_message(self, addresses: Sequence[str], body: str) -> MIMEText:
        """Compose the message: buffer text, blank lines, sign-off."""
        account = self._account()
        signature = account.signature or account.address
        msg = MIMEText(body + "\n\n\n" + _SIGNOFF.format(signature=signature))
        msg["Subject"] = f"A message from {signature}"
        msg["From"] = formataddr((signature, account.address))
        msg["To"] = ", ".join(addresses)
        return msg

    def send(self, addresses: Sequence[str], body: str) -> None:
        """
        Send *body* to *addresses*.

        Raises:
            MailError: If no account is stored or the SMTP exchange fails.
        """
        account = self._account()
        if not account.is_complete:
            raise MailError("No e-mail account configured")
        if not addresses:
            raise MailError("No recipient address")
        msg = self.build_message(addresses, body)
        try:
            with smtplib.SMTP_SSL(account.smtp_host, account.smtp_port, timeout=account.timeout_s) as smtp:
                smtp.login(account.address, account.password)
                smtp.sendmail(account.address, list(addresses), msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise MailError(f"Sending failed: {exc}") from exc
        logger.info("Message sent to %s", ", ".join(addresses))
