from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..errors import FetchError, FetchErrorKind
from ..http_utils import HttpClient, with_query_params
from ..models import RunSnapshot, StatusCode, normalize_status
from .base import describe_payload, fetch_json

DEFAULT_API_URL = "https://api.github.com"

# 只有 status == completed 的 run 才看 conclusion。
CONCLUSION_STATUS: Mapping[str, StatusCode] = {
    "success": StatusCode.SUCCESS,
    "failure": StatusCode.FAILURE,
    "timed_out": StatusCode.FAILURE,
    "startup_failure": StatusCode.FAILURE,
    "cancelled": StatusCode.UNKNOWN,
    "skipped": StatusCode.UNKNOWN,
    "neutral": StatusCode.UNKNOWN,
    "stale": StatusCode.UNKNOWN,
    "action_required": StatusCode.UNKNOWN,
}


@dataclass(slots=True)
class GitHubActionsFetcher:
    """
    GitHub Actions：读取仓库最近一次 workflow run。

    状态归一：
    - status 不是 completed（queued / in_progress / waiting ...）一律 PENDING
    - completed 后按 conclusion 映射，见 CONCLUSION_STATUS
    """

    owner: str
    repo: str
    http: HttpClient
    token: str | None = None
    api_url: str = DEFAULT_API_URL

    def key(self) -> str:
        return f"github:{self.owner}/{self.repo}"

    def _headers(self) -> Mapping[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch(self) -> RunSnapshot | None:
        base_url = f"{self.api_url.rstrip('/')}/repos/{self.owner}/{self.repo}/actions/runs"
        url = with_query_params(base_url, {"per_page": "1"})
        data = fetch_json(self.http, url, headers=self._headers(), platform="GitHub")

        runs = data.get("workflow_runs") if isinstance(data, dict) else None
        if not isinstance(runs, list):
            raise FetchError(
                FetchErrorKind.TRANSIENT,
                f"GitHub API expected workflow_runs list: url={url} body_prefix={describe_payload(data)!r}",
            )
        if not runs or not isinstance(runs[0], dict):
            return None

        run = runs[0]
        if run.get("id") is None:
            raise FetchError(FetchErrorKind.TRANSIENT, f"GitHub API run without id: url={url}")
        run_status = str(run.get("status") or "").lower()
        conclusion = run.get("conclusion")
        if run_status and run_status != "completed":
            status = StatusCode.PENDING
            native = run_status
        elif conclusion is None:
            status = StatusCode.PENDING
            native = run_status or None
        else:
            status = normalize_status(str(conclusion), CONCLUSION_STATUS)
            native = str(conclusion)

        return RunSnapshot(
            id=str(run.get("id")),
            status=status,
            native_status=native,
            url=str(run.get("html_url") or "") or None,
            raw=run,
        )
