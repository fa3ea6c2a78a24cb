from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException

from ..errors import DeliveryError, DeliveryErrorKind
from ..http_utils import HttpClient
from ..models import Notification, NotificationKind
from .base import delivery_error_from_http
from .formatter import details_text, status_label, summary_line

FAILURE_COLOR = 0xFF0000
RECOVERY_COLOR = 0x00FF00


@dataclass(slots=True)
class DiscordSink:
    """
    Discord webhook：content 摘要 + 一个 embed。成功时 Discord 返回 204。
    """

    webhook_url: str
    http: HttpClient
    timeout_seconds: float = 10.0

    def channel(self) -> str:
        return "discord"

    def deliver(self, notification: Notification) -> None:
        try:
            resp = self.http.post_json(self.webhook_url, self._build_payload(notification), timeout=self.timeout_seconds)
        except (HTTPException, OSError) as e:
            raise delivery_error_from_http(e, self.channel()) from e

        if resp.status >= 400:
            raise DeliveryError(
                DeliveryErrorKind.REJECTED,
                self.channel(),
                f"Discord webhook failed: status={resp.status} body={resp.body[:200]!r}",
            )

    def _build_payload(self, notification: Notification) -> dict[str, object]:
        embed: dict[str, object] = {
            "title": f"{notification.repository}: {status_label(notification)}",
            "description": details_text(notification),
            "color": FAILURE_COLOR if notification.kind is NotificationKind.FAILURE else RECOVERY_COLOR,
            "timestamp": notification.timestamp.isoformat(),
        }
        if notification.run.url:
            embed["url"] = notification.run.url
        return {"content": summary_line(notification), "embeds": [embed]}
