from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Protocol

from filesweep.common.config import EmailCfg

log = logging.getLogger("filesweep.notifier")


class Notifier(Protocol):
    def send(self, subject: str, body: str) -> bool: ...


class ConsoleNotifier:
    def send(self, subject: str, body: str) -> bool:
        print(f"[NOTIFY] {subject}")
        for line in body.splitlines():
            print(f"        {line}")
        return True


class EmailNotifier:
    """
    Sends one plaintext message over SMTP (STARTTLS + login), with the log
    file attached. Best-effort: transport failures are logged, never raised.
    """

    def __init__(self, cfg: EmailCfg, password: str, attachment: Path | None = None) -> None:
        self.cfg = cfg
        self.password = password
        self.attachment = attachment

    def build_message(self, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr(("filesweep", self.cfg.from_address))
        msg["To"] = self.cfg.to_address
        msg.set_content(body)

        if self.attachment and self.attachment.is_file():
            msg.add_attachment(
                self.attachment.read_bytes(),
                maintype="text",
                subtype="plain",
                filename=self.attachment.name,
            )
        return msg

    def send(self, subject: str, body: str) -> bool:
        try:
            msg = self.build_message(subject, body)
            kwargs = {"timeout": self.cfg.timeout_s} if self.cfg.timeout_s else {}
            with smtplib.SMTP(self.cfg.smtp_host, self.cfg.port, **kwargs) as smtp:
                if self.cfg.use_tls:
                    smtp.starttls()
                smtp.login(self.cfg.from_address, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            log.error("email to %s via %s:%d failed: %s", self.cfg.to_address, self.cfg.smtp_host, self.cfg.port, e)
            return False

        log.info("email sent to %s: %s", self.cfg.to_address, subject)
        return True
