from __future__ import annotations

import mimetypes
import os
from pathlib import Path
import smtplib
from email.message import EmailMessage
from typing import Sequence, Tuple

from . import templates


class EmailProvider:
    def send(
        self,
        *,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        attachments: Sequence[str],
        correlation_id: str | None,
    ) -> None:
        raise NotImplementedError


class NoopProvider(EmailProvider):
    def send(
        self,
        *,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        attachments: Sequence[str],
        correlation_id: str | None,
    ) -> None:
        return None


class SmtpProvider(EmailProvider):
    """
    Plain SMTP delivery.

    Env expected:
      SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_FROM
    """

    def __init__(self, *, host: str, port: int, sender: str, user: str | None = None, password: str | None = None):
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password

    def _build_message(
        self,
        *,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        attachments: Sequence[str],
        correlation_id: str | None,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        if correlation_id:
            msg["X-Correlation-ID"] = correlation_id
        msg.set_content(templates.render_body(template_key, context))

        for raw_path in attachments:
            path = Path(raw_path)
            content_type, _ = mimetypes.guess_type(path.name)
            maintype, subtype = (content_type or "application/octet-stream").split("/", 1)
            msg.add_attachment(
                path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                filename=path.name,
            )
        return msg

    def send(
        self,
        *,
        template_key: str,
        recipient: str,
        subject: str,
        context: dict,
        attachments: Sequence[str],
        correlation_id: str | None,
    ) -> None:
        msg = self._build_message(
            template_key=template_key,
            recipient=recipient,
            subject=subject,
            context=context,
            attachments=attachments,
            correlation_id=correlation_id,
        )
        with smtplib.SMTP(self.host, self.port, timeout=30) as s:
            s.starttls()
            if self.user and self.password:
                s.login(self.user, self.password)
            s.send_message(msg)


def get_email_provider() -> Tuple[EmailProvider, bool]:
    provider_name = (
        os.getenv("NOTIFICATIONS_EMAIL_PROVIDER")
        or os.getenv("EMAIL_PROVIDER")
        or ""
    ).strip().lower()
    if not provider_name or provider_name in {"none", "noop", "disabled"}:
        return NoopProvider(), False
    if provider_name == "smtp":
        host = os.getenv("SMTP_HOST")
        sender = os.getenv("SMTP_FROM")
        if not (host and sender):
            return NoopProvider(), False
        return (
            SmtpProvider(
                host=host,
                port=int(os.getenv("SMTP_PORT", "587")),
                sender=sender,
                user=os.getenv("SMTP_USER"),
                password=os.getenv("SMTP_PASS"),
            ),
            True,
        )
    raise ValueError(f"Unsupported email provider: {provider_name}")
