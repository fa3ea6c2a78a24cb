from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ConfigError, ConfigErrorKind
from .fetchers import SUPPORTED_PLATFORMS


def _require_dict(value: Any, *, where: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(ConfigErrorKind.INVALID_VALUE, f"Expected object at {where}, got {type(value)}")
    return value


def _get_bool(d: Mapping[str, Any], key: str, default: bool) -> bool:
    v = d.get(key, default)
    return bool(v)


def _get_float(d: Mapping[str, Any], key: str, default: float) -> float:
    v = d.get(key, default)
    if isinstance(v, bool):
        return default
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _get_int(d: Mapping[str, Any], key: str, default: int) -> int:
    v = d.get(key, default)
    if isinstance(v, bool):
        return default
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _get_str(d: Mapping[str, Any], key: str, default: str | None = None) -> str | None:
    v = d.get(key, default)
    if v is None:
        return None
    return str(v)


def _get_str_list(d: Mapping[str, Any], key: str, default: list[str]) -> list[str]:
    v = d.get(key, default)
    if v is None:
        return list(default)
    if isinstance(v, str):
        return [v]
    if isinstance(v, list):
        return [str(x) for x in v]
    return list(default)


@dataclass(frozen=True, slots=True)
class EmailNotifyConfig:
    """
    邮件通知配置（SMTP）。账号密码只通过环境变量名引用。
    """

    smtp_host: str
    smtp_port: int
    user_env: str
    password_env: str
    to_list: tuple[str, ...]
    use_tls: bool = True


@dataclass(frozen=True, slots=True)
class AlertConfig:
    """
    应用总配置：启动时构造一次，之后只读。

    platform / token / owner / repo:
      - 被监控的仓库与平台凭据
    slack_webhooks / webhook_urls / discord_webhooks / email:
      - 通知渠道，至少配置一个
    poll_interval_seconds / watch:
      - 轮询间隔与是否持续监控（否则只跑一个周期）
    api_url:
      - 可选的 API 根地址（GitHub Enterprise / 自建 GitLab）
    request_timeout_seconds / delivery_timeout_seconds:
      - 拉取与单渠道投递各自的超时
    """

    platform: str
    token: str | None
    owner: str
    repo: str
    slack_webhooks: tuple[str, ...] = ()
    webhook_urls: tuple[str, ...] = ()
    discord_webhooks: tuple[str, ...] = ()
    email: EmailNotifyConfig | None = None
    poll_interval_seconds: int = 60
    watch: bool = False
    api_url: str | None = None
    request_timeout_seconds: float = 20.0
    delivery_timeout_seconds: float = 10.0

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    def sink_count(self) -> int:
        count = len(self.slack_webhooks) + len(self.webhook_urls) + len(self.discord_webhooks)
        if self.email is not None:
            count += 1
        return count

    def resolve_env(self, env_name: str | None) -> str | None:
        if not env_name:
            return None
        return os.environ.get(env_name)

    def validate(self) -> AlertConfig:
        """
        启动期校验，任何一项不满足都直接抛 ConfigError，不会发起网络请求。
        """
        if (self.platform or "").strip().lower() not in SUPPORTED_PLATFORMS:
            raise ConfigError(
                ConfigErrorKind.UNSUPPORTED_PLATFORM,
                f"unsupported platform {self.platform!r}; expected one of {', '.join(SUPPORTED_PLATFORMS)}",
            )
        if not self.token:
            raise ConfigError(ConfigErrorKind.MISSING_CREDENTIALS, "an API token is required")
        if not self.owner or not self.repo:
            raise ConfigError(ConfigErrorKind.MISSING_CREDENTIALS, "repository owner and name are required")
        if self.sink_count() == 0:
            raise ConfigError(
                ConfigErrorKind.NO_SINKS_CONFIGURED,
                "Please specify at least one notification channel (webhook, slack, discord or email)",
            )
        if self.email is not None and (not self.email.smtp_host or not self.email.to_list):
            raise ConfigError(ConfigErrorKind.INVALID_VALUE, "email notify requires smtp_host and to_list")
        if self.poll_interval_seconds < 1:
            raise ConfigError(ConfigErrorKind.INVALID_VALUE, "poll_interval_seconds must be >= 1")
        if self.request_timeout_seconds <= 0 or self.delivery_timeout_seconds <= 0:
            raise ConfigError(ConfigErrorKind.INVALID_VALUE, "timeouts must be positive")
        return self


def load_config(config_path: str) -> AlertConfig:
    """
    JSON 配置文件，顶层结构（示意）：
    {
      "platform": "github",
      "owner": "octo", "repo": "app",
      "token_env": "GITHUB_TOKEN",
      "poll_interval_seconds": 60,
      "watch": true,
      "timeouts": { "request_seconds": 20, "delivery_seconds": 10 },
      "notify": { "slack": [...], "webhook": [...], "discord": [...], "email": { ... } }
    }

    token 可以直接写 "token"，更推荐用 "token_env" 引用环境变量，避免落盘。
    """
    try:
        with open(config_path, "rb") as f:
            raw = json.loads(f.read().decode("utf-8"))
    except OSError as e:
        raise ConfigError(ConfigErrorKind.INVALID_VALUE, f"cannot read config {config_path}: {e}") from e
    except ValueError as e:
        raise ConfigError(ConfigErrorKind.INVALID_VALUE, f"invalid JSON config {config_path}: {e}") from e

    root = _require_dict(raw, where="$")

    token = _get_str(root, "token", None)
    token_env = _get_str(root, "token_env", None)
    if not token and token_env:
        token = os.environ.get(token_env)

    timeouts = _require_dict(root.get("timeouts", {}), where="$.timeouts")
    notify = _require_dict(root.get("notify", {}), where="$.notify")

    email_cfg: EmailNotifyConfig | None = None
    if isinstance(notify.get("email"), dict):
        em = _require_dict(notify["email"], where="$.notify.email")
        email_cfg = EmailNotifyConfig(
            smtp_host=str(em.get("smtp_host") or ""),
            smtp_port=_get_int(em, "smtp_port", 587),
            user_env=str(em.get("user_env") or ""),
            password_env=str(em.get("password_env") or ""),
            to_list=tuple(_get_str_list(em, "to_list", [])),
            use_tls=_get_bool(em, "use_tls", True),
        )

    return AlertConfig(
        platform=str(root.get("platform") or "").strip().lower(),
        token=token,
        owner=str(root.get("owner") or ""),
        repo=str(root.get("repo") or ""),
        slack_webhooks=tuple(_get_str_list(notify, "slack", [])),
        webhook_urls=tuple(_get_str_list(notify, "webhook", [])),
        discord_webhooks=tuple(_get_str_list(notify, "discord", [])),
        email=email_cfg,
        poll_interval_seconds=_get_int(root, "poll_interval_seconds", 60),
        watch=_get_bool(root, "watch", False),
        api_url=_get_str(root, "api_url", None),
        request_timeout_seconds=_get_float(timeouts, "request_seconds", 20.0),
        delivery_timeout_seconds=_get_float(timeouts, "delivery_seconds", 10.0),
    )
