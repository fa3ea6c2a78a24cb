from __future__ import annotations

import json
import socket
import urllib.error
from http.client import HTTPException
from typing import Any, Mapping, Protocol

from ..errors import FetchError, FetchErrorKind
from ..http_utils import HttpClient
from ..models import RunSnapshot


class RunSnapshotFetcher(Protocol):
    """
    平台适配器接口：每次调用只发一个 page size = 1 的请求，返回最近一次 run。

    约定：
    - 仓库没有任何 run 时返回 None（不是错误）
    - 网络/鉴权错误（含响应体读到一半连接断开）统一抛 FetchError，由 runner 捕获记录
    """

    def key(self) -> str: ...

    def fetch(self) -> RunSnapshot | None: ...


def fetch_json(http: HttpClient, url: str, *, headers: Mapping[str, str], platform: str) -> Any:
    """
    GET 并解析 JSON，把底层异常归类为 FetchError。
    """
    try:
        resp = http.get(url, headers=headers)
    except urllib.error.HTTPError as e:
        if e.code in (401, 403):
            kind = FetchErrorKind.AUTH
        elif e.code == 404:
            kind = FetchErrorKind.NOT_FOUND
        else:
            kind = FetchErrorKind.TRANSIENT
        raise FetchError(kind, f"{platform} API error: status={e.code} url={url}") from e
    except (urllib.error.URLError, TimeoutError, socket.timeout, HTTPException, OSError) as e:
        raise FetchError(FetchErrorKind.TRANSIENT, f"{platform} API unreachable: {e} url={url}") from e

    try:
        return resp.json()
    except ValueError as e:
        body_prefix = resp.text()[:400]
        raise FetchError(
            FetchErrorKind.TRANSIENT,
            f"{platform} API invalid JSON: status={resp.status} url={resp.url} body_prefix={body_prefix!r}",
        ) from e


def describe_payload(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)[:400] if data is not None else "null"
