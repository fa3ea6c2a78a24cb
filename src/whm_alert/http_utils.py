from __future__ import annotations

import json
import ssl
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    url: str
    headers: Mapping[str, str]
    body: bytes

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class HttpClient:
    """
    轻量 HTTP 客户端（仅依赖标准库），供 fetcher 拉取与 sink 投递共用。

    约定：
    - 每次请求都带超时，挂起的远端不会无限拖住轮询周期
    - 不做重试：下一次轮询就是拉取的重试机制，投递失败只记录不重发
    - HTTP 错误原样抛出 urllib.error.HTTPError / URLError，由调用方归类
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 20.0,
        user_agent: str = "whm-alert/1",
        verify_ssl: bool = True,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._ssl_context = ssl.create_default_context() if verify_ssl else ssl._create_unverified_context()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def get(self, url: str, *, headers: Mapping[str, str] | None = None) -> HttpResponse:
        return self._request("GET", url, headers=headers, data=None, timeout=None)

    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        request_headers = {"Content-Type": "application/json; charset=utf-8"}
        if headers:
            request_headers.update(dict(headers))
        return self._request("POST", url, headers=request_headers, data=data, timeout=timeout)

    def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None,
        data: bytes | None,
        timeout: float | None,
    ) -> HttpResponse:
        request_headers = {"User-Agent": self._user_agent}
        if headers:
            request_headers.update(dict(headers))

        req = urllib.request.Request(url=url, data=data, headers=request_headers, method=method)
        effective_timeout = self._timeout_seconds if timeout is None else timeout
        with urllib.request.urlopen(req, timeout=effective_timeout, context=self._ssl_context) as resp:  # noqa: S310
            resp_headers = {k: v for k, v in resp.headers.items()} if getattr(resp, "headers", None) else {}
            return HttpResponse(
                status=getattr(resp, "status", 200),
                url=resp.geturl() if hasattr(resp, "geturl") else url,
                headers=resp_headers,
                body=resp.read(),
            )


def is_transient_http_status(code: int) -> bool:
    return code == 429 or code >= 500


def with_query_params(url: str, params: Mapping[str, str]) -> str:
    parsed = urllib.parse.urlparse(url)
    q = dict(urllib.parse.parse_qsl(parsed.query, keep_blank_values=True))
    q.update({k: v for k, v in params.items() if v is not None})
    new_query = urllib.parse.urlencode(q)
    return urllib.parse.urlunparse(parsed._replace(query=new_query))
