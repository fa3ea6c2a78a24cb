from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime

from .config import AlertConfig
from .detector import TransitionDetector
from .dispatcher import EMPTY_DISPATCH, AlertDispatcher, DispatchReport
from .errors import ConfigError, ConfigErrorKind, FetchError
from .fetchers import RunSnapshotFetcher, build_fetcher
from .http_utils import HttpClient
from .models import RunSnapshot, Transition, TransitionKind, utc_now
from .notify.base import ChannelSink
from .notify.discord import DiscordSink
from .notify.email import EmailSink
from .notify.slack import SlackSink
from .notify.webhook import WebhookSink


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CycleReport:
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    snapshot: RunSnapshot | None
    transition: Transition | None
    dispatch: DispatchReport
    fetch_error: str | None

    @property
    def alerted(self) -> bool:
        return self.dispatch.notification is not None


@dataclass(slots=True)
class Runner:
    """
    轮询循环：fetch -> detect ->（可告警时）dispatch。

    约定：
    - 一个周期完整结束后才会开始下一个，detector 状态只在本线程内读写
    - 拉取失败只记录日志，detector 不推进（等价于“没有新信息”）
    - 投递失败由 dispatcher 隔离与记录，从不中断循环
    """

    fetcher: RunSnapshotFetcher
    dispatcher: AlertDispatcher
    repository: str
    poll_interval_seconds: int = 60
    detector: TransitionDetector = field(default_factory=TransitionDetector)

    def __post_init__(self) -> None:
        if not self.dispatcher.sinks:
            raise ConfigError(ConfigErrorKind.NO_SINKS_CONFIGURED, "runner requires at least one channel sink")

    @property
    def sinks(self) -> tuple[ChannelSink, ...]:
        return self.dispatcher.sinks

    def run_once(self) -> CycleReport:
        """
        执行一个轮询周期（单次）。
        """
        started_at = utc_now()
        start_t = time.monotonic()

        try:
            snapshot = self.fetcher.fetch()
        except FetchError as e:
            logger.error(
                "fetch failed: repository=%s fetcher=%s kind=%s error=%s",
                self.repository,
                self.fetcher.key(),
                e.kind.value,
                e,
            )
            return CycleReport(
                started_at=started_at,
                finished_at=utc_now(),
                duration_ms=int((time.monotonic() - start_t) * 1000),
                snapshot=None,
                transition=None,
                dispatch=EMPTY_DISPATCH,
                fetch_error=str(e),
            )

        transition = self.detector.observe(snapshot)
        if snapshot is None:
            logger.info("poll: repository=%s no runs found", self.repository)
        else:
            logger.info(
                "poll: repository=%s run_id=%s status=%s native_status=%s transition=%s",
                self.repository,
                snapshot.id,
                snapshot.status.value,
                snapshot.native_status,
                transition.kind.value,
            )

        dispatch = self.dispatcher.dispatch(transition)
        if transition.kind in (TransitionKind.FAILURE, TransitionKind.RECOVERY):
            logger.info(
                "dispatch done: repository=%s event=%s attempts=%d successes=%d failures=%d",
                self.repository,
                transition.kind.value,
                dispatch.attempts,
                dispatch.successes,
                dispatch.failures,
            )

        return CycleReport(
            started_at=started_at,
            finished_at=utc_now(),
            duration_ms=int((time.monotonic() - start_t) * 1000),
            snapshot=snapshot,
            transition=transition,
            dispatch=dispatch,
            fetch_error=None,
        )

    def run_forever(self, stop: threading.Event) -> int:
        """
        立即执行一次，然后按固定间隔（从每个周期开始计时）循环，直到 stop 被 set。

        stop 只阻止调度新的周期，不会打断正在执行的周期。返回已执行的周期数。
        """
        interval = max(1, self.poll_interval_seconds)
        cycles = 0
        while True:
            tick_t = time.monotonic()
            cycles += 1
            try:
                self.run_once()
            except Exception:  # noqa: BLE001
                logger.exception("cycle crashed: id=%d repository=%s", cycles, self.repository)

            remaining = interval - (time.monotonic() - tick_t)
            if stop.wait(timeout=max(0.0, remaining)):
                logger.info("poll loop stopped: repository=%s cycles=%d", self.repository, cycles)
                return cycles

    def run(self, *, watch: bool, stop: threading.Event | None = None) -> int:
        if not watch:
            self.run_once()
            return 1
        return self.run_forever(stop or threading.Event())


def build_sinks(config: AlertConfig, http: HttpClient) -> tuple[ChannelSink, ...]:
    timeout = config.delivery_timeout_seconds
    sinks: list[ChannelSink] = []
    for url in config.slack_webhooks:
        sinks.append(SlackSink(webhook_url=url, http=http, timeout_seconds=timeout))
    for url in config.webhook_urls:
        sinks.append(WebhookSink(url=url, http=http, timeout_seconds=timeout))
    for url in config.discord_webhooks:
        sinks.append(DiscordSink(webhook_url=url, http=http, timeout_seconds=timeout))
    if config.email:
        sinks.append(
            EmailSink(
                smtp_host=config.email.smtp_host,
                smtp_port=config.email.smtp_port,
                username=config.resolve_env(config.email.user_env) or "",
                password=config.resolve_env(config.email.password_env) or "",
                to_list=config.email.to_list,
                use_tls=config.email.use_tls,
                timeout_seconds=timeout,
            )
        )
    return tuple(sinks)


def build_runner(config: AlertConfig, *, http: HttpClient | None = None) -> Runner:
    """
    根据配置构建可运行的 Runner。

    先校验配置（无渠道 / 缺凭据直接抛 ConfigError），再做“配置 -> 实例”的装配；
    fetcher 按平台在这里选定一次，Runner 内只关注流程编排。
    """
    config.validate()
    http = http or HttpClient(timeout_seconds=config.request_timeout_seconds)

    fetcher = build_fetcher(
        config.platform,
        owner=config.owner,
        repo=config.repo,
        token=config.token,
        http=http,
        api_url=config.api_url,
    )
    dispatcher = AlertDispatcher(
        repository=config.repository,
        sinks=build_sinks(config, http),
        delivery_timeout_seconds=config.delivery_timeout_seconds,
    )
    return Runner(
        fetcher=fetcher,
        dispatcher=dispatcher,
        repository=config.repository,
        poll_interval_seconds=config.poll_interval_seconds,
    )
