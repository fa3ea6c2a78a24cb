import json
import urllib.error
from dataclasses import dataclass, field
from http.client import IncompleteRead, RemoteDisconnected

import pytest

from whm_alert.errors import FetchError, FetchErrorKind
from whm_alert.fetchers.github import GitHubActionsFetcher
from whm_alert.http_utils import HttpResponse
from whm_alert.models import StatusCode


@dataclass
class FakeHttp:
    payload: object = None
    error: Exception | None = None
    urls: list[str] = field(default_factory=list)
    headers: list[dict] = field(default_factory=list)

    def get(self, url: str, *, headers=None) -> HttpResponse:  # noqa: ANN001
        self.urls.append(url)
        self.headers.append(dict(headers or {}))
        if self.error is not None:
            raise self.error
        return HttpResponse(status=200, url=url, headers={}, body=json.dumps(self.payload).encode("utf-8"))


def _fetcher(http: FakeHttp) -> GitHubActionsFetcher:
    return GitHubActionsFetcher(owner="octo", repo="app", http=http, token="t")  # type: ignore[arg-type]


def _run(**kwargs) -> dict:  # noqa: ANN003
    run = {"id": 101, "status": "completed", "conclusion": "success", "html_url": "https://github.com/octo/app/actions/runs/101"}
    run.update(kwargs)
    return run


def test_requests_single_latest_run_with_auth() -> None:
    http = FakeHttp(payload={"total_count": 1, "workflow_runs": [_run()]})
    snapshot = _fetcher(http).fetch()

    assert len(http.urls) == 1
    assert http.urls[0] == "https://api.github.com/repos/octo/app/actions/runs?per_page=1"
    assert http.headers[0]["Authorization"] == "Bearer t"
    assert http.headers[0]["Accept"] == "application/vnd.github+json"
    assert snapshot is not None
    assert snapshot.id == "101"
    assert snapshot.status is StatusCode.SUCCESS
    assert snapshot.url == "https://github.com/octo/app/actions/runs/101"


@pytest.mark.parametrize(
    ("conclusion", "expected"),
    [
        ("success", StatusCode.SUCCESS),
        ("failure", StatusCode.FAILURE),
        ("timed_out", StatusCode.FAILURE),
        ("startup_failure", StatusCode.FAILURE),
        ("cancelled", StatusCode.UNKNOWN),
        ("skipped", StatusCode.UNKNOWN),
        ("something_new", StatusCode.UNKNOWN),
    ],
)
def test_completed_run_maps_conclusion(conclusion: str, expected: StatusCode) -> None:
    http = FakeHttp(payload={"workflow_runs": [_run(conclusion=conclusion)]})
    snapshot = _fetcher(http).fetch()
    assert snapshot is not None
    assert snapshot.status is expected
    assert snapshot.native_status == conclusion


@pytest.mark.parametrize("status", ["queued", "in_progress", "waiting", "requested"])
def test_unfinished_run_is_pending(status: str) -> None:
    http = FakeHttp(payload={"workflow_runs": [_run(status=status, conclusion=None)]})
    snapshot = _fetcher(http).fetch()
    assert snapshot is not None
    assert snapshot.status is StatusCode.PENDING


def test_no_runs_returns_none() -> None:
    http = FakeHttp(payload={"total_count": 0, "workflow_runs": []})
    assert _fetcher(http).fetch() is None


def test_custom_api_url_for_enterprise() -> None:
    http = FakeHttp(payload={"workflow_runs": []})
    fetcher = GitHubActionsFetcher(
        owner="octo", repo="app", http=http, token="t", api_url="https://ghe.example.com/api/v3/"  # type: ignore[arg-type]
    )
    fetcher.fetch()
    assert http.urls[0].startswith("https://ghe.example.com/api/v3/repos/octo/app/actions/runs?")


@pytest.mark.parametrize(
    ("code", "kind"),
    [
        (401, FetchErrorKind.AUTH),
        (403, FetchErrorKind.AUTH),
        (404, FetchErrorKind.NOT_FOUND),
        (500, FetchErrorKind.TRANSIENT),
        (429, FetchErrorKind.TRANSIENT),
    ],
)
def test_http_errors_are_classified(code: int, kind: FetchErrorKind) -> None:
    err = urllib.error.HTTPError("https://api.github.com", code, "err", {}, None)  # type: ignore[arg-type]
    http = FakeHttp(error=err)
    with pytest.raises(FetchError) as exc_info:
        _fetcher(http).fetch()
    assert exc_info.value.kind is kind


def test_connection_error_is_transient() -> None:
    http = FakeHttp(error=urllib.error.URLError("connection refused"))
    with pytest.raises(FetchError) as exc_info:
        _fetcher(http).fetch()
    assert exc_info.value.kind is FetchErrorKind.TRANSIENT


def test_unexpected_payload_is_transient() -> None:
    http = FakeHttp(payload={"message": "weird"})
    with pytest.raises(FetchError) as exc_info:
        _fetcher(http).fetch()
    assert exc_info.value.kind is FetchErrorKind.TRANSIENT


@pytest.mark.parametrize(
    "error",
    [
        IncompleteRead(b'{"total_count": 1, ', 481),
        RemoteDisconnected("Remote end closed connection without response"),
        ConnectionResetError(104, "Connection reset by peer"),
    ],
)
def test_broken_response_is_transient(error: Exception) -> None:
    http = FakeHttp(error=error)
    with pytest.raises(FetchError) as exc_info:
        _fetcher(http).fetch()
    assert exc_info.value.kind is FetchErrorKind.TRANSIENT
    assert exc_info.value.__cause__ is error
