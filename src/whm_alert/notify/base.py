from __future__ import annotations

import socket
import urllib.error
from http.client import HTTPException
from typing import Protocol

from ..errors import DeliveryError, DeliveryErrorKind
from ..http_utils import is_transient_http_status
from ..models import Notification


class ChannelSink(Protocol):
    """
    通知渠道接口：把共享的 Notification 渲染成本渠道的格式并投递。

    约定：
    - deliver 失败抛 DeliveryError，由 dispatcher 统一捕获并记录
    - channel() 用于日志与投递结果记录
    """

    def channel(self) -> str: ...

    def deliver(self, notification: Notification) -> None: ...


def delivery_error_from_http(exc: HTTPException | OSError, channel: str) -> DeliveryError:
    """
    把 POST 过程中的传输异常归类为 DeliveryError：4xx（429 除外）视为被拒绝，其余为瞬时错误。

    其余 OSError（如连接被重置）与 http.client 的响应读取错误都记为瞬时错误。
    """
    if isinstance(exc, urllib.error.HTTPError):
        kind = DeliveryErrorKind.TRANSIENT if is_transient_http_status(exc.code) else DeliveryErrorKind.REJECTED
        return DeliveryError(kind, channel, f"webhook responded with status={exc.code}")
    if isinstance(exc, urllib.error.URLError):
        return DeliveryError(DeliveryErrorKind.TRANSIENT, channel, f"webhook unreachable: {exc.reason}")
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return DeliveryError(DeliveryErrorKind.TRANSIENT, channel, "webhook timed out")
    if isinstance(exc, HTTPException):
        return DeliveryError(DeliveryErrorKind.TRANSIENT, channel, f"webhook response broken: {type(exc).__name__}: {exc}")
    return DeliveryError(DeliveryErrorKind.TRANSIENT, channel, f"{type(exc).__name__}: {exc}")
