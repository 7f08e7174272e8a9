"""Alert notification delivery.

The evaluator only needs ``send(to, subject, body) -> bool``. Delivery is
best-effort: failures are logged and reported as ``False``, never retried.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol, runtime_checkable

from oracle_sentinel.core.config import NotifierBackend, NotifierConfig
from oracle_sentinel.core.exceptions import NotificationError
from oracle_sentinel.core.models import AlertDefinition, OracleName

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Anything that can deliver a plain-text message."""

    async def send(self, to: str, subject: str, body: str) -> bool: ...


def format_alert_message(
    alert: AlertDefinition,
    oracle: OracleName,
    price: float,
    evaluated_at: datetime,
) -> tuple[str, str]:
    """Build the subject and body for a triggered alert."""
    asset = alert.asset.upper()
    subject = f"Price Alert for {asset} ({oracle})"
    body = (
        "Price Alert Triggered!\n\n"
        f"Asset: {asset}\n"
        f"Oracle: {oracle}\n"
        f"Current Price: ${price:,.8g}\n"
        f"Alert Type: {alert.type}\n"
        f"Threshold: ${alert.threshold:,.8g}\n"
        f"Time: {evaluated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}"
    )
    return subject, body


class SmtpNotifier:
    """Sends plain-text email through an SMTP account.

    smtplib is blocking, so each send runs in a worker thread.
    """

    def __init__(self, config: NotifierConfig) -> None:
        self._config = config

    async def send(self, to: str, subject: str, body: str) -> bool:
        try:
            await asyncio.to_thread(self._send_sync, to, subject, body)
        except NotificationError as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return False
        logger.info("Email sent to %s", to)
        return True

    def _send_sync(self, to: str, subject: str, body: str) -> None:
        cfg = self._config
        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = formataddr((cfg.sender_name, cfg.username or ""))
        msg["To"] = to

        try:
            if cfg.smtp_tls:
                with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout) as server:
                    server.starttls(context=ssl.create_default_context())
                    server.login(cfg.username, cfg.password or "")
                    server.sendmail(cfg.username, [to], msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    cfg.smtp_host,
                    cfg.smtp_port,
                    timeout=cfg.timeout,
                    context=ssl.create_default_context(),
                ) as server:
                    server.login(cfg.username, cfg.password or "")
                    server.sendmail(cfg.username, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"SMTP delivery failed: {e}",
                context={"to": to, "backend": str(NotifierBackend.SMTP)},
            ) from e


class LogNotifier:
    """Writes messages to the log instead of sending them (dry runs)."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> bool:
        self.sent.append((to, subject, body))
        logger.info("Notification for %s: %s\n%s", to, subject, body)
        return True


def create_notifier(config: NotifierConfig) -> Notifier:
    """Build the notifier selected in config."""
    if config.backend == NotifierBackend.SMTP:
        return SmtpNotifier(config)
    return LogNotifier()
