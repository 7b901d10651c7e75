# incidenthook/services/notifier.py
import smtplib
import logging
from email.message import EmailMessage
from typing import List, Optional

import requests

from incidenthook.errors import NotifyError

log = logging.getLogger(__name__)


def webhook_payload(title: str, body: str) -> dict:
    # formato Discord: {"content": "..."}
    return {"content": f"**{title}**\n{body}"}


class Notifier:
    """
    Best-effort: webhook y/o email según configuración. Nunca levanta excepción
    hacia el caller; sin reintentos.
    """

    def __init__(
        self,
        webhook_url: str = "",
        recipients: Optional[List[str]] = None,
        sender: str = "alerts@localhost",
        smtp_host: str = "",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        smtp_starttls: bool = True,
        timeout: float = 10,
    ):
        self.webhook_url = webhook_url or ""
        self.recipients = list(recipients or [])
        self.sender = sender
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_starttls = smtp_starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "Notifier":
        return cls(
            webhook_url=settings.ALERT_WEBHOOK,
            recipients=settings.alert_recipients,
            sender=settings.ALERT_EMAIL_FROM,
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_starttls=settings.SMTP_STARTTLS,
            timeout=settings.NOTIFY_TIMEOUT_SECONDS,
        )

    @property
    def channels(self) -> List[str]:
        out = []
        if self.webhook_url:
            out.append("webhook")
        if self.recipients and self.smtp_host:
            out.append("email")
        return out

    def notify(self, title: str, body: str) -> None:
        for channel in self.channels:
            try:
                if channel == "webhook":
                    self._send_webhook(title, body)
                else:
                    self._send_email(title, body)
            except Exception as e:
                log.warning("[notify] %s delivery failed: %s", channel, e)

    # ---- canales ----
    def _send_webhook(self, title: str, body: str) -> None:
        r = requests.post(self.webhook_url, json=webhook_payload(title, body), timeout=self.timeout)
        if r.status_code >= 400:
            raise NotifyError(f"webhook status {r.status_code}: {r.text[:200]}")
        log.info("[notify] webhook sent: %s", title)

    def _send_email(self, title: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = title
        msg["From"] = self.sender
        msg["To"] = ", ".join(self.recipients)
        msg.set_content(body)

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
            if self.smtp_starttls:
                smtp.starttls()
            if self.smtp_user:
                smtp.login(self.smtp_user, self.smtp_password)
            smtp.send_message(msg)
        log.info("[notify] email sent to %d recipient(s): %s", len(self.recipients), title)
