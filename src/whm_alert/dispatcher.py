from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime

from .models import Notification, Transition, utc_now
from .notify.base import ChannelSink


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    channel: str
    sink_type: str
    ok: bool
    error: str | None
    duration_ms: int


@dataclass(frozen=True, slots=True)
class DispatchReport:
    notification: Notification | None
    results: tuple[DeliveryResult, ...]

    @property
    def attempts(self) -> int:
        return len(self.results)

    @property
    def successes(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failures(self) -> int:
        return sum(1 for r in self.results if not r.ok)


EMPTY_DISPATCH = DispatchReport(notification=None, results=())


@dataclass(slots=True)
class AlertDispatcher:
    """
    告警分发：一次可告警的 transition 只构造一个 Notification，并发投递到所有渠道。

    隔离规则：
    - 每个渠道独立尝试，一个渠道失败/超时不影响其他渠道
    - 所有投递结果都记录日志并写入 DispatchReport，不向调用方抛异常
    - 等待上限为 delivery_timeout_seconds + wait_grace_seconds；仍未完成的投递记为超时，
      dispatcher 不再等待它（线程由其自身的 socket 超时自然结束）
    """

    repository: str
    sinks: tuple[ChannelSink, ...]
    delivery_timeout_seconds: float = 10.0
    wait_grace_seconds: float = 1.0

    def dispatch(self, transition: Transition, *, now: datetime | None = None) -> DispatchReport:
        if not transition.is_alertable:
            return EMPTY_DISPATCH
        notification = Notification.from_transition(
            transition,
            repository=self.repository,
            timestamp=now or utc_now(),
        )
        return self.deliver(notification)

    def deliver(self, notification: Notification) -> DispatchReport:
        if not self.sinks:
            return DispatchReport(notification=notification, results=())

        started = time.monotonic()
        executor = ThreadPoolExecutor(max_workers=len(self.sinks), thread_name_prefix="whm-deliver")
        futures: list[tuple[ChannelSink, Future[int]]] = []
        try:
            for sink in self.sinks:
                futures.append((sink, executor.submit(_timed_deliver, sink, notification)))
            wait([f for _, f in futures], timeout=self.delivery_timeout_seconds + self.wait_grace_seconds)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results: list[DeliveryResult] = []
        for sink, future in futures:
            results.append(self._collect(sink, future, notification, started))
        return DispatchReport(notification=notification, results=tuple(results))

    def _collect(
        self,
        sink: ChannelSink,
        future: Future[int],
        notification: Notification,
        started: float,
    ) -> DeliveryResult:
        channel = sink.channel()
        sink_type = type(sink).__name__

        if not future.done():
            future.cancel()
            elapsed_ms = int((time.monotonic() - started) * 1000)
            logger.error(
                "deliver timed out: channel=%s sink_type=%s event=%s repository=%s run_id=%s after_ms=%d may_still_complete=true",
                channel,
                sink_type,
                notification.kind.value,
                notification.repository,
                notification.run.id,
                elapsed_ms,
            )
            return DeliveryResult(
                channel=channel,
                sink_type=sink_type,
                ok=False,
                error=f"timed out after {self.delivery_timeout_seconds}s",
                duration_ms=elapsed_ms,
            )

        exc = future.exception()
        if exc is None:
            duration_ms = future.result()
            logger.info(
                "deliver ok: channel=%s sink_type=%s event=%s repository=%s run_id=%s duration_ms=%d",
                channel,
                sink_type,
                notification.kind.value,
                notification.repository,
                notification.run.id,
                duration_ms,
            )
            return DeliveryResult(channel=channel, sink_type=sink_type, ok=True, error=None, duration_ms=duration_ms)

        logger.error(
            "deliver failed: channel=%s sink_type=%s event=%s repository=%s run_id=%s",
            channel,
            sink_type,
            notification.kind.value,
            notification.repository,
            notification.run.id,
            exc_info=exc,
        )
        return DeliveryResult(
            channel=channel,
            sink_type=sink_type,
            ok=False,
            error=f"{type(exc).__name__}: {exc}",
            duration_ms=int((time.monotonic() - started) * 1000),
        )


def _timed_deliver(sink: ChannelSink, notification: Notification) -> int:
    t = time.monotonic()
    sink.deliver(notification)
    return int((time.monotonic() - t) * 1000)
