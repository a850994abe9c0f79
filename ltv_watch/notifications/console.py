"""Log-only notifier used when no chat transport is enabled."""
import logging

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Writes notifications to the log instead of delivering them."""

    async def send_message(self, chat_id: str, text: str) -> bool:
        logger.info("Notification for %s:\n%s", chat_id, text)
        return True
