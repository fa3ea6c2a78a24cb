from __future__ import annotations

import smtplib
import time
from dataclasses import dataclass
from email.message import EmailMessage

from ..errors import DeliveryError, DeliveryErrorKind
from ..models import Notification
from .formatter import format_notification_text, summary_line


@dataclass(slots=True)
class EmailSink:
    smtp_host: str
    smtp_port: int
    username: str
    password: str
    to_list: tuple[str, ...]
    use_tls: bool = True
    timeout_seconds: float = 10.0

    def channel(self) -> str:
        return "email"

    def deliver(self, notification: Notification) -> None:
        if not self.to_list:
            raise DeliveryError(DeliveryErrorKind.REJECTED, self.channel(), "EmailSink.to_list is empty")

        msg = EmailMessage()
        msg["Subject"] = f"[whm-alert] {summary_line(notification)}"
        msg["From"] = self.username
        msg["To"] = ", ".join(self.to_list)
        msg.set_content(format_notification_text(notification))

        # connect / STARTTLS / login / send 共用一个截止时间
        deadline = time.monotonic() + self.timeout_seconds
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout_seconds) as client:
                if self.use_tls:
                    _arm_deadline(client, deadline)
                    client.starttls()
                if self.username:
                    _arm_deadline(client, deadline)
                    client.login(self.username, self.password)
                _arm_deadline(client, deadline)
                client.send_message(msg)
        except (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused, smtplib.SMTPAuthenticationError) as e:
            raise DeliveryError(DeliveryErrorKind.REJECTED, self.channel(), f"{type(e).__name__}: {e}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(DeliveryErrorKind.TRANSIENT, self.channel(), f"{type(e).__name__}: {e}") from e


def _arm_deadline(client: smtplib.SMTP, deadline: float) -> None:
    """
    把剩余时间设为下一步的 socket 超时；已经用完则直接按超时失败。
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise TimeoutError("smtp exchange exceeded deadline")
    sock = getattr(client, "sock", None)
    if sock is not None:
        sock.settimeout(remaining)
