"""Notification modules."""
from .console import ConsoleNotifier
from .telegram import TelegramNotifier

__all__ = ["ConsoleNotifier", "TelegramNotifier"]
