from __future__ import annotations

from ..models import Notification, NotificationKind


def summary_line(notification: Notification) -> str:
    if notification.kind is NotificationKind.FAILURE:
        return f"🚨 Pipeline Failed: {notification.repository}"
    return f"✅ Pipeline Recovered: {notification.repository}"


def status_label(notification: Notification) -> str:
    return "FAILED" if notification.kind is NotificationKind.FAILURE else "PASSED"


def details_text(notification: Notification) -> str:
    if notification.kind is NotificationKind.FAILURE:
        text = "The pipeline has failed. Check the logs for more details."
    else:
        text = "The pipeline is now passing again."
    if notification.run.url:
        text = f"{text} {notification.run.url}"
    return text


def format_notification_text(notification: Notification) -> str:
    """
    纯文本格式，用于邮件正文等不支持富格式的渠道。
    """
    run = notification.run
    lines = [
        summary_line(notification),
        f"repository: {notification.repository}",
        f"status: {status_label(notification)}",
        f"run_id: {run.id}",
        f"run_status: {run.native_status or run.status.value}",
        f"url: {run.url or '-'}",
        f"observed_at: {notification.timestamp.isoformat()}",
        "",
        details_text(notification),
    ]
    return "\n".join(lines)
