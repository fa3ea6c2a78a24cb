from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from typing import Mapping

from ..errors import FetchError, FetchErrorKind
from ..http_utils import HttpClient, with_query_params
from ..models import RunSnapshot, StatusCode, normalize_status
from .base import describe_payload, fetch_json

DEFAULT_API_URL = "https://gitlab.com/api/v4"

PIPELINE_STATUS: Mapping[str, StatusCode] = {
    "success": StatusCode.SUCCESS,
    "failed": StatusCode.FAILURE,
    "created": StatusCode.PENDING,
    "waiting_for_resource": StatusCode.PENDING,
    "preparing": StatusCode.PENDING,
    "pending": StatusCode.PENDING,
    "running": StatusCode.PENDING,
    "scheduled": StatusCode.PENDING,
    "manual": StatusCode.PENDING,
    "canceled": StatusCode.UNKNOWN,
    "skipped": StatusCode.UNKNOWN,
}


@dataclass(slots=True)
class GitLabPipelinesFetcher:
    """
    GitLab CI：读取项目最近一次 pipeline（按 id 倒序，per_page=1）。

    project 使用 URL 编码后的 "owner/repo" 路径，api_url 可指向自建实例。
    """

    owner: str
    repo: str
    http: HttpClient
    token: str | None = None
    api_url: str = DEFAULT_API_URL

    def key(self) -> str:
        return f"gitlab:{self.owner}/{self.repo}"

    def _headers(self) -> Mapping[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["PRIVATE-TOKEN"] = self.token
        return headers

    def fetch(self) -> RunSnapshot | None:
        project_id = urllib.parse.quote(f"{self.owner}/{self.repo}", safe="")
        base_url = f"{self.api_url.rstrip('/')}/projects/{project_id}/pipelines"
        url = with_query_params(base_url, {"per_page": "1", "order_by": "id", "sort": "desc"})
        data = fetch_json(self.http, url, headers=self._headers(), platform="GitLab")

        if not isinstance(data, list):
            raise FetchError(
                FetchErrorKind.TRANSIENT,
                f"GitLab API expected list: url={url} body_prefix={describe_payload(data)!r}",
            )
        if not data or not isinstance(data[0], dict):
            return None

        pipeline = data[0]
        if pipeline.get("id") is None:
            raise FetchError(FetchErrorKind.TRANSIENT, f"GitLab API pipeline without id: url={url}")
        native = pipeline.get("status")
        return RunSnapshot(
            id=str(pipeline.get("id")),
            status=normalize_status(str(native) if native is not None else None, PIPELINE_STATUS),
            native_status=str(native) if native is not None else None,
            url=str(pipeline.get("web_url") or "") or None,
            raw=pipeline,
        )
