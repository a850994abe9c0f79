"""Notifier protocol: chat delivery abstraction."""
from typing import Protocol


class Notifier(Protocol):
    """Abstract interface for delivering text to a chat identity."""

    async def send_message(self, chat_id: str, text: str) -> bool: ...
