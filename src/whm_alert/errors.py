from __future__ import annotations

from enum import Enum


class FetchErrorKind(str, Enum):
    TRANSIENT = "transient"
    AUTH = "auth"
    NOT_FOUND = "not_found"


class DeliveryErrorKind(str, Enum):
    TRANSIENT = "transient"
    REJECTED = "rejected"


class ConfigErrorKind(str, Enum):
    NO_SINKS_CONFIGURED = "no_sinks_configured"
    MISSING_CREDENTIALS = "missing_credentials"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    INVALID_VALUE = "invalid_value"


class FetchError(RuntimeError):
    """
    拉取最新 run 失败。

    由 runner 捕获并记录；失败的拉取等价于“没有新信息”，不会推进 detector 状态。
    """

    def __init__(self, kind: FetchErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.args[0]}"


class DeliveryError(RuntimeError):
    """
    单个渠道投递失败。dispatcher 负责隔离，不影响其他渠道。
    """

    def __init__(self, kind: DeliveryErrorKind, channel: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.channel = channel

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.channel}: {self.args[0]}"


class ConfigError(ValueError):
    """
    启动期配置错误，进入轮询之前即失败。
    """

    def __init__(self, kind: ConfigErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.args[0]}"
