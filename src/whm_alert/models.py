from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Mapping


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class StatusCode(str, Enum):
    """
    统一的运行状态：各平台的原生状态词都归一到这四个值。
    """

    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"
    UNKNOWN = "unknown"


def normalize_status(value: str | None, table: Mapping[str, StatusCode]) -> StatusCode:
    """
    按平台映射表归一状态词（大小写不敏感）；表中没有的词一律视为 UNKNOWN。
    """
    key = (value or "").strip().lower()
    if not key:
        return StatusCode.UNKNOWN
    return table.get(key, StatusCode.UNKNOWN)


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    """
    某个仓库最近一次 pipeline run 的快照，每次拉取都重新生成，不落盘。

    id 在仓库内唯一；native_status/url/raw 只用于展示与 webhook 透传，
    状态判断只看 status。
    """

    id: str
    status: StatusCode
    native_status: str | None = None
    url: str | None = None
    raw: Mapping[str, Any] | None = None

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "native_status": self.native_status,
            "url": self.url,
            "raw": self.raw,
        }


class TransitionKind(str, Enum):
    NONE = "none"
    FIRST_OBSERVATION = "first_observation"
    FAILURE = "failure"
    RECOVERY = "recovery"
    IN_PROGRESS = "in_progress"


ALERTABLE_KINDS = frozenset({TransitionKind.FAILURE, TransitionKind.RECOVERY})


@dataclass(frozen=True, slots=True)
class Transition:
    kind: TransitionKind
    snapshot: RunSnapshot | None = None

    @property
    def is_alertable(self) -> bool:
        return self.kind in ALERTABLE_KINDS


NO_TRANSITION = Transition(kind=TransitionKind.NONE)


class NotificationKind(str, Enum):
    FAILURE = "failure"
    RECOVERY = "recovery"


@dataclass(frozen=True, slots=True)
class Notification:
    """
    告警通知：每次可告警的 transition 只构造一次，所有渠道共享只读。

    渲染由各渠道自己负责（Slack attachment / 通用 JSON / 邮件正文等）。
    """

    kind: NotificationKind
    repository: str
    run: RunSnapshot
    timestamp: datetime

    @classmethod
    def from_transition(cls, transition: Transition, *, repository: str, timestamp: datetime) -> Notification:
        if not transition.is_alertable or transition.snapshot is None:
            raise ValueError(f"transition is not alertable: {transition.kind.value}")
        return cls(
            kind=NotificationKind(transition.kind.value),
            repository=repository,
            run=transition.snapshot,
            timestamp=timestamp,
        )

    def to_json_dict(self) -> dict[str, Any]:
        """
        通用 webhook 的事件格式（datetime 使用 ISO8601 字符串）。
        """
        return {
            "event": self.kind.value,
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            "run": self.run.to_json_dict(),
        }
