from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException

from ..errors import DeliveryError, DeliveryErrorKind
from ..http_utils import HttpClient
from ..models import Notification, NotificationKind
from .base import delivery_error_from_http
from .formatter import details_text, status_label, summary_line

FAILURE_COLOR = "#ff0000"
RECOVERY_COLOR = "#00ff00"


@dataclass(slots=True)
class SlackSink:
    """
    Slack Incoming Webhook。

    payload：text 摘要 + 一个 attachment（Repository / Status / Details 三个字段），
    失败红色、恢复绿色。
    """

    webhook_url: str
    http: HttpClient
    timeout_seconds: float = 10.0

    def channel(self) -> str:
        return "slack"

    def deliver(self, notification: Notification) -> None:
        payload = self._build_payload(notification)
        try:
            resp = self.http.post_json(self.webhook_url, payload, timeout=self.timeout_seconds)
        except (HTTPException, OSError) as e:
            raise delivery_error_from_http(e, self.channel()) from e

        body = resp.text().strip()
        if resp.status >= 400 or (body and body != "ok"):
            raise DeliveryError(
                DeliveryErrorKind.REJECTED,
                self.channel(),
                f"unexpected Slack response: status={resp.status} body={body[:200]!r}",
            )

    def _build_payload(self, notification: Notification) -> dict[str, object]:
        color = FAILURE_COLOR if notification.kind is NotificationKind.FAILURE else RECOVERY_COLOR
        return {
            "text": summary_line(notification),
            "attachments": [
                {
                    "color": color,
                    "fields": [
                        {"title": "Repository", "value": notification.repository, "short": True},
                        {"title": "Status", "value": status_label(notification), "short": True},
                        {"title": "Details", "value": details_text(notification)},
                    ],
                }
            ],
        }
