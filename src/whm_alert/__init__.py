"""
whm-alert

轮询 CI/CD 平台（GitHub Actions / GitLab CI）的最近一次 pipeline run，
在 run 于失败与成功之间切换时向一个或多个通知渠道发送告警。
"""

from .models import Notification, RunSnapshot, StatusCode, Transition, TransitionKind

__all__ = [
    "Notification",
    "RunSnapshot",
    "StatusCode",
    "Transition",
    "TransitionKind",
]
