from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException

from ..errors import DeliveryError, DeliveryErrorKind
from ..http_utils import HttpClient
from ..models import Notification
from .base import delivery_error_from_http


@dataclass(slots=True)
class WebhookSink:
    """
    通用 webhook：POST 扁平 JSON 事件 {event, repository, timestamp, run}。
    """

    url: str
    http: HttpClient
    timeout_seconds: float = 10.0

    def channel(self) -> str:
        return "webhook"

    def deliver(self, notification: Notification) -> None:
        try:
            resp = self.http.post_json(
                self.url,
                notification.to_json_dict(),
                timeout=self.timeout_seconds,
            )
        except (HTTPException, OSError) as e:
            raise delivery_error_from_http(e, self.channel()) from e

        if resp.status >= 400:
            raise DeliveryError(
                DeliveryErrorKind.REJECTED,
                self.channel(),
                f"webhook failed: status={resp.status} body={resp.body[:200]!r}",
            )
