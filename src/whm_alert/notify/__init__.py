from .base import ChannelSink
from .discord import DiscordSink
from .email import EmailSink
from .formatter import format_notification_text
from .slack import SlackSink
from .webhook import WebhookSink

__all__ = [
    "ChannelSink",
    "DiscordSink",
    "EmailSink",
    "SlackSink",
    "WebhookSink",
    "format_notification_text",
]
