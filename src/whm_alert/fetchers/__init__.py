from __future__ import annotations

from typing import Callable

from ..errors import ConfigError, ConfigErrorKind
from ..http_utils import HttpClient
from .base import RunSnapshotFetcher
from .github import GitHubActionsFetcher
from .gitlab import GitLabPipelinesFetcher

_FACTORIES: dict[str, Callable[..., RunSnapshotFetcher]] = {
    "github": GitHubActionsFetcher,
    "gitlab": GitLabPipelinesFetcher,
}

SUPPORTED_PLATFORMS = tuple(sorted(_FACTORIES))


def build_fetcher(
    platform: str,
    *,
    owner: str,
    repo: str,
    token: str | None,
    http: HttpClient,
    api_url: str | None = None,
) -> RunSnapshotFetcher:
    """
    按平台名选择 fetcher 实现，只在装配阶段调用一次。
    """
    factory = _FACTORIES.get((platform or "").strip().lower())
    if factory is None:
        raise ConfigError(
            ConfigErrorKind.UNSUPPORTED_PLATFORM,
            f"unsupported platform {platform!r}; expected one of {', '.join(SUPPORTED_PLATFORMS)}",
        )
    kwargs = {"owner": owner, "repo": repo, "http": http, "token": token}
    if api_url:
        kwargs["api_url"] = api_url
    return factory(**kwargs)


__all__ = [
    "GitHubActionsFetcher",
    "GitLabPipelinesFetcher",
    "RunSnapshotFetcher",
    "SUPPORTED_PLATFORMS",
    "build_fetcher",
]
