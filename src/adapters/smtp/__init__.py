"""Notification adapters - Confirmation email delivery."""

from .console import ConsoleNotificationSender
from .smtp import SmtpNotificationSender

__all__ = ["ConsoleNotificationSender", "SmtpNotificationSender"]
